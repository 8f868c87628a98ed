"""
Reconnection manager with exponential backoff.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class ReconnectionManager:
    """
    Schedules reconnection attempts with bounded exponential backoff.

    Attempt n waits base_delay * 2**n seconds: 2s, 4s, 8s, 16s, 32s with the
    defaults. The attempt counter is only reset by reset(); a successful
    reconnect does not reset it.
    """

    def __init__(
        self,
        base_delay: float = 1.0,
        max_attempts: int = 5,
        sleep: Sleep = asyncio.sleep,
    ):
        """
        Initialize reconnection manager.

        Args:
            base_delay: Base backoff time in seconds
            max_attempts: Maximum number of reconnection attempts
            sleep: Awaitable sleep used for the backoff delay
        """
        self._base_delay = base_delay
        self._max_attempts = max_attempts
        self._sleep = sleep

        self._attempts = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def can_retry(self) -> bool:
        return self._attempts < self._max_attempts

    def delay_for(self, attempt: int) -> float:
        return self._base_delay * (2 ** attempt)

    def schedule(self, attempt_fn: Callable[[], Awaitable[None]]) -> bool:
        """
        Schedule attempt_fn after the next backoff delay.

        Returns:
            True if scheduled, False if max attempts already used
        """
        if not self.can_retry:
            logger.error(
                f"Max reconnection attempts ({self._max_attempts}) exceeded"
            )
            return False

        self.cancel()
        self._attempts += 1
        delay = self.delay_for(self._attempts)

        logger.info(
            f"Reconnection attempt {self._attempts}/{self._max_attempts} in {delay:.1f}s"
        )

        self._task = asyncio.create_task(self._run(delay, attempt_fn))
        return True

    async def _run(self, delay: float, attempt_fn: Callable[[], Awaitable[None]]) -> None:
        await self._sleep(delay)
        await attempt_fn()

    def cancel(self) -> None:
        """Cancel a pending attempt, if any."""
        task, self._task = self._task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            logger.debug("Cancelled pending reconnection attempt")

    def reset(self) -> None:
        """Cancel any pending attempt and start the backoff sequence over."""
        self.cancel()
        self._attempts = 0

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def attempts(self) -> int:
        """Get the number of reconnection attempts."""
        return self._attempts
