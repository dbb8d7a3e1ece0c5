"""Periodic trigger for the idle-silence storyteller."""

import asyncio
from typing import Optional

from loguru import logger

from chimein.modes.afk import IdleSilenceHandler


class IdleTimer:
    """Fires the silence check on a fixed period, independent of chat traffic."""

    def __init__(self, handler: IdleSilenceHandler, interval_s: float = 30.0):
        self.handler = handler
        self.interval_s = interval_s
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        if self._running:
            logger.warning("Idle timer already running")
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(f"Idle timer started (every {self.interval_s:.0f}s)")

    def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            self._task = None
        logger.info("Idle timer stopped")

    async def tick(self) -> bool:
        """One silence check. Returns True if a story was told."""
        if not self.handler.enabled:
            return False
        return await self.handler.maybe_tell_story()

    async def _run_loop(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self.interval_s)
                if not self._running:
                    break
                await self.tick()
            except asyncio.CancelledError:
                logger.debug("Idle timer loop cancelled")
                break
            except Exception as e:
                logger.error(f"[{self.handler.label}] Timer error: {e}")
