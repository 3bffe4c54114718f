"""Periodic liveness stamp proving the process (and the mains) were up."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from src.services.state_store import HEARTBEAT_KEY, StateStorageError, StateStore
from src.utils.clock import Clock, utc_now


class HeartbeatService:
    """Write the current instant to the store once per interval."""

    def __init__(self, store: StateStore, *, interval: float = 60, clock: Clock = utc_now):
        self.store = store
        self.interval = interval
        self.clock = clock
        self.logger = logging.getLogger("PowerWatch.Heartbeat")
        self._task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        if self._task:
            return
        self._task = asyncio.create_task(self._loop())
        self.logger.info("Heartbeat writer started (interval=%ss).", self.interval)

    async def close(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def beat(self) -> bool:
        """Stamp the heartbeat once; a failed write is logged and reported as False."""
        now = self.clock()
        try:
            await self.store.set_timestamp(HEARTBEAT_KEY, now)
        except StateStorageError as exc:
            self.logger.warning("Heartbeat write skipped: %s", exc)
            return False
        self.logger.debug("Heartbeat written at %s", now.isoformat())
        return True

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self.beat()
