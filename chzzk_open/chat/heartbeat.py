"""
Periodic PING for an open chat socket.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class Heartbeat:
    """Runs `tick` every `interval` seconds until stopped."""

    def __init__(self, interval: float = 30.0, sleep: Sleep = asyncio.sleep):
        self._interval = interval
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None

    def start(self, tick: Callable[[], Awaitable[None]]) -> None:
        self.stop()
        self._task = asyncio.create_task(self._run(tick))
        logger.debug(f"Heartbeat started ({self._interval}s)")

    async def _run(self, tick: Callable[[], Awaitable[None]]) -> None:
        while True:
            await self._sleep(self._interval)
            try:
                await tick()
            except Exception as e:
                logger.error(f"Heartbeat tick failed: {e}", exc_info=True)

    def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()
