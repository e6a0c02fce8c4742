from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from asmo.collectors.base import CollectorStopped
from asmo.collectors.parsing import END_OF_BATCH

logger = logging.getLogger(__name__)

DEFAULT_READ_LIMIT = 1024 * 1024  # bytes per output line


class ShellClosedError(CollectorStopped):
    """The privileged shell could not be spawned or stopped accepting commands."""


class PrivilegedShell:
    """A long-lived elevated shell driven through its stdin/stdout pipes.

    Use as an async context manager: the child is terminated (killed if it
    ignores the request) and reaped on every exit path.
    """

    def __init__(
        self,
        command: Sequence[str],
        shutdown_timeout: float = 2.0,
        read_limit: int = DEFAULT_READ_LIMIT,
    ) -> None:
        if not command:
            raise ValueError("shell command must not be empty")
        self.command = list(command)
        self.shutdown_timeout = shutdown_timeout
        self.read_limit = read_limit
        self._proc: asyncio.subprocess.Process | None = None

    async def __aenter__(self) -> PrivilegedShell:
        await self.open()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # ── lifecycle ────────────────────────────────────────

    async def open(self) -> None:
        if self._proc is not None:
            return
        try:
            self._proc = await asyncio.create_subprocess_exec(
                *self.command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                limit=self.read_limit,
            )
        except OSError as exc:
            raise ShellClosedError(f"cannot spawn {self.command[0]!r}: {exc}") from exc
        logger.info("Privileged shell started: %s (pid=%d)", self.command[0], self._proc.pid)

    async def close(self) -> None:
        proc, self._proc = self._proc, None
        if proc is None:
            return
        if proc.stdin is not None and not proc.stdin.is_closing():
            proc.stdin.close()
        if proc.returncode is None:
            try:
                proc.terminate()
            except ProcessLookupError:
                pass
            try:
                await asyncio.wait_for(proc.wait(), timeout=self.shutdown_timeout)
            except asyncio.TimeoutError:
                logger.warning("Privileged shell (pid=%d) ignored SIGTERM, killing", proc.pid)
                proc.kill()
                await proc.wait()
        logger.info("Privileged shell exited (pid=%d, code=%s)", proc.pid, proc.returncode)

    # ── commands ────────────────────────────────────────

    async def run_batch(self, command: str, sentinel: str = END_OF_BATCH) -> list[str]:
        """Write ``command`` and collect output lines up to ``sentinel``.

        The sentinel line itself is not returned. Raises ShellClosedError if
        the shell has exited, the write fails, or output ends early.
        """
        proc = self._proc
        if proc is None or proc.returncode is not None:
            raise ShellClosedError("privileged shell is not running")
        if proc.stdin is None or proc.stdout is None:
            raise ShellClosedError("privileged shell has no stdio pipes")

        try:
            proc.stdin.write(command.encode())
            await proc.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as exc:
            raise ShellClosedError(f"write to privileged shell failed: {exc}") from exc

        lines: list[str] = []
        while True:
            raw = await self._read_line(proc.stdout)
            if raw is None:
                continue
            line = raw.decode(errors="replace").strip()
            if line == sentinel:
                return lines
            lines.append(line)

    async def _read_line(self, stream: asyncio.StreamReader) -> bytes | None:
        """Read one line; lines longer than ``read_limit`` are dropped whole.

        Returns ``None`` for a dropped line so the batch stays aligned with
        its sentinel.
        """
        dropped = 0
        while True:
            try:
                raw = await stream.readuntil(b"\n")
            except asyncio.IncompleteReadError as exc:
                raise ShellClosedError("privileged shell closed its output mid-batch") from exc
            except asyncio.LimitOverrunError as exc:
                dropped += exc.consumed
                await stream.readexactly(exc.consumed)
                continue
            if dropped:
                logger.warning("Dropped %d-byte line from privileged shell output", dropped + len(raw))
                return None
            return raw

    @property
    def pid(self) -> int | None:
        return self._proc.pid if self._proc is not None else None

    @property
    def alive(self) -> bool:
        return self._proc is not None and self._proc.returncode is None
