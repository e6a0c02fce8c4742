from __future__ import annotations

import asyncio
import logging

from asmo.models.stats import SystemStats

logger = logging.getLogger(__name__)


class SnapshotChannel:
    """Single-slot, last-value-wins broadcast cell for the latest snapshot.

    One producer overwrites the slot each tick; any number of readers take
    the current value without blocking the producer. History is never
    queued, so a reader that misses a tick never sees it.
    """

    def __init__(self, initial: SystemStats) -> None:
        self._value = initial
        self._version = 0
        self._updated = asyncio.Event()
        self._waiting = 0

    # ── producer ────────────────────────────────────────

    def publish(self, snapshot: SystemStats) -> None:
        self._value = snapshot
        self._version += 1
        # Swap in a fresh event so late waiters block until the next publish.
        updated, self._updated = self._updated, asyncio.Event()
        updated.set()

    # ── consumers ───────────────────────────────────────

    @property
    def latest(self) -> SystemStats:
        return self._value

    async def wait_for_update(
        self,
        after_version: int,
        timeout: float | None = None,
    ) -> SystemStats:
        """Return the latest snapshot once ``version`` exceeds ``after_version``.

        Raises ``asyncio.TimeoutError`` if nothing is published in time.
        """
        async with asyncio.timeout(timeout):
            while self._version <= after_version:
                updated = self._updated
                self._waiting += 1
                try:
                    await updated.wait()
                finally:
                    self._waiting -= 1
        return self._value

    # ── introspection ───────────────────────────────────

    @property
    def version(self) -> int:
        return self._version

    @property
    def waiting(self) -> int:
        return self._waiting
