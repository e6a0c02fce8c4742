from __future__ import annotations

import asyncio
import contextlib
import logging
from abc import ABC, abstractmethod
from typing import Any

from asmo.engine.channel import SnapshotChannel
from asmo.models.stats import SystemStats

logger = logging.getLogger(__name__)


class CollectorStopped(Exception):
    """Raised by a collector when it can no longer produce snapshots."""


class BaseCollector(ABC):
    """Abstract base for periodic snapshot producers.

    Subclasses implement ``collect()`` which returns one snapshot per tick.
    The base class handles the async loop, interval timing, the resources
    held for the loop's lifetime (``session()``) and graceful shutdown.
    A ``CollectorStopped`` error ends the loop for good; any other error
    skips the tick.
    """

    name: str = "base"
    interval: float = 0.5  # seconds between ticks

    def __init__(self, channel: SnapshotChannel, interval: float | None = None) -> None:
        self._channel = channel
        if interval is not None:
            self.interval = interval
        self._running = False
        self._task: asyncio.Task | None = None
        self._ticks = 0

    # ── lifecycle ────────────────────────────────────────

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info("Collector [%s] started (interval=%.1fs)", self.name, self.interval)

    async def stop(self) -> None:
        self._running = False
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Collector [%s] stopped", self.name)

    # ── hooks ───────────────────────────────────────────

    @abstractmethod
    async def collect(self) -> SystemStats:
        """Take one reading and return the snapshot to publish."""
        ...

    def session(self) -> contextlib.AbstractAsyncContextManager[Any]:
        """Resources held open for as long as the loop runs."""
        return contextlib.nullcontext()

    # ── internals ───────────────────────────────────────

    async def _loop(self) -> None:
        try:
            async with self.session():
                while self._running:
                    try:
                        snapshot = await self.collect()
                    except (asyncio.CancelledError, CollectorStopped):
                        raise
                    except Exception:
                        logger.exception("Collector [%s] error during collect()", self.name)
                    else:
                        self._channel.publish(snapshot)
                        self._ticks += 1
                    await asyncio.sleep(self.interval)
        except CollectorStopped as exc:
            logger.error(
                "Collector [%s] stopped permanently: %s (serving last snapshot)",
                self.name,
                exc,
            )
        finally:
            self._running = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def ticks(self) -> int:
        return self._ticks
