import asyncio
import logging
from typing import Awaitable, Callable, Optional

from .constants import DEFAULT_POLL_INTERVAL

logger = logging.getLogger(__name__)


class RateLimitPoller:
    """
    Periodic background task refreshing quota state.

    Calls given coroutine function every ``interval`` seconds (first call
    happens one interval after start). Errors of a single tick are logged and
    polling goes on. The owner must call stop() on shutdown.

    Example:
        >>> poller = RateLimitPoller(refreshRateLimits, interval=10)
        >>> poller.start()
        >>> ...
        >>> poller.stop()
    """

    def __init__(self, callback: Callable[[], Awaitable[None]], interval: float = DEFAULT_POLL_INTERVAL):
        """
        Initialize the poller.

        Args:
            callback: Coroutine function called on every tick
            interval: Seconds between ticks

        Raises:
            ValueError: If interval is not positive
        """
        if interval <= 0:
            raise ValueError("interval must be positive")

        self.callback = callback
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def isRunning(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start polling in background (must be called from running event loop)."""
        if self.isRunning:
            logger.warning("RateLimitPoller already started")
            return

        self._task = asyncio.create_task(self._pollingLoop(), name="rate-limit-poller")
        logger.debug(f"RateLimitPoller started, interval={self.interval}s")

    def stop(self) -> None:
        """Stop polling. Safe to call several times."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            logger.debug("RateLimitPoller stopped")
        self._task = None

    async def _pollingLoop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.callback()
            except Exception as e:
                logger.error(f"Error while polling rate limits: {type(e).__name__}#{e}")
                logger.exception(e)
