"""
Request Queue Module

This module provides the RequestQueue class: a bounded-concurrency FIFO work
queue which can be temporarily blocked (e.g. until an API quota resets).
One queue is created per remote operation, so exhausting the quota of one
endpoint doesn't stall calls to other endpoints, dood!

Example:
    >>> queue = RequestQueue("repos.get", QueueConfig(maxConcurrent=2))
    >>> result = await queue.add(lambda: client.repos.get({"owner": "o", "repo": "r"}))
    >>>
    >>> # Quota exhausted: don't start anything new for 30 seconds
    >>> queue.blockQueue(30000)
"""

import asyncio
import logging
import time
from dataclasses import replace
from typing import Any, List, Optional, Set

from .types import (
    QueueConfig,
    QueueEvent,
    QueueEventType,
    QueueListener,
    QueueStats,
    WorkFunction,
    WorkItem,
)

logger = logging.getLogger(__name__)


class RequestQueue:
    """
    Bounded-concurrency work queue with retry policy and blocking support.

    Items start in submission order. At most ``config.maxConcurrent`` items
    are executing at any moment. While the queue is blocked no new item (and
    no retry attempt) is started, but items already executing are left alone.

    Attributes:
        name: Queue name (usually the operation id it serves)
        config: Concurrency and retry configuration

    Concurrency:
        Each queue owns its own asyncio.Semaphore, queues never share state.
        All methods must be called from the event loop thread.
    """

    def __init__(self, name: str, config: Optional[QueueConfig] = None):
        """
        Initialize the queue.

        Args:
            name: Queue name for logging and statistics
            config: Queue configuration (default: QueueConfig())
        """
        self.name = name
        self.config = config if config is not None else QueueConfig()

        self._semaphore = asyncio.Semaphore(self.config.maxConcurrent)
        # time.monotonic() based deadline
        self._blockedUntil: Optional[float] = None
        self._blockChanged = asyncio.Event()
        self._listeners: List[QueueListener] = []
        self._tasks: Set[asyncio.Task] = set()
        self._stats = QueueStats()

        logger.debug(
            f"RequestQueue '{name}' created: maxConcurrent={self.config.maxConcurrent}, "
            f"retry={self.config.retry}, maxRetries={self.config.maxRetries}"
        )

    def addListener(self, listener: QueueListener) -> "RequestQueue":
        """
        Subscribe to queue events.

        Listener is called with a QueueEvent on every item completion
        (success or final failure) and on every scheduled retry.

        Args:
            listener: Callable accepting QueueEvent

        Returns:
            Self, so calls can be chained right after construction
        """
        self._listeners.append(listener)
        return self

    def removeListener(self, listener: QueueListener) -> None:
        """Unsubscribe previously added listener."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, event: QueueEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Queue '{self.name}': error in listener {listener}: {type(e).__name__}#{e}")

    def submit(self, item: WorkItem) -> asyncio.Task:
        """
        Submit work item for execution.

        Args:
            item: Work item to execute

        Returns:
            asyncio.Task resolving to the item result (or raising its last error)
        """
        self._stats.submitted += 1
        self._stats.waiting += 1
        task = asyncio.create_task(self._process(item), name=f"{self.name}: {item.name}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def add(self, func: WorkFunction, name: Optional[str] = None, retry: Optional[bool] = None) -> Any:
        """
        Submit async thunk and wait for its result.

        Args:
            func: Async callable without arguments
            name: Display name (default: queue name)
            retry: Per-item retry override (default: queue policy)

        Returns:
            Whatever func returns
        """
        return await self.submit(WorkItem(func=func, name=name or self.name, retry=retry))

    async def _process(self, item: WorkItem) -> Any:
        started = False
        try:
            async with self._semaphore:
                await self._waitUnblocked()
                self._stats.waiting -= 1
                self._stats.running += 1
                started = True
                return await self._execute(item)
        finally:
            if started:
                self._stats.running -= 1
            else:
                self._stats.waiting -= 1

    async def _execute(self, item: WorkItem) -> Any:
        retry = self.config.retry if item.retry is None else item.retry
        maxAttempts = 1 + (self.config.maxRetries if retry else 0)

        while True:
            item.attempts += 1
            try:
                result = await item.func()
            except Exception as e:
                if item.attempts < maxAttempts:
                    self._stats.retried += 1
                    logger.warning(
                        f"Queue '{self.name}': {item.name} failed on attempt {item.attempts}/{maxAttempts}: "
                        f"{type(e).__name__}#{e}, retrying..."
                    )
                    self._emit(QueueEvent(QueueEventType.RETRY, self.name, item.name, item.attempts, e))
                    if self.config.retryDelay > 0:
                        await asyncio.sleep(self.config.retryDelay)
                    await self._waitUnblocked()
                    continue

                self._stats.failed += 1
                logger.error(
                    f"Queue '{self.name}': {item.name} failed after {item.attempts} attempt(s): "
                    f"{type(e).__name__}#{e}"
                )
                self._emit(QueueEvent(QueueEventType.FAILURE, self.name, item.name, item.attempts, e))
                raise

            self._stats.succeeded += 1
            self._emit(QueueEvent(QueueEventType.SUCCESS, self.name, item.name, item.attempts))
            return result

    async def _waitUnblocked(self) -> None:
        remaining = self.blockedFor()
        while remaining > 0:
            logger.debug(f"Queue '{self.name}' is blocked, waiting {remaining:.2f} seconds...")
            blockChanged = self._blockChanged
            try:
                await asyncio.wait_for(blockChanged.wait(), timeout=remaining)
            except asyncio.TimeoutError:
                pass
            remaining = self.blockedFor()

    def _notifyBlockChanged(self) -> None:
        # Wake up current waiters and arm new event for the next change
        self._blockChanged.set()
        self._blockChanged = asyncio.Event()

    def blockQueue(self, durationMs: float) -> None:
        """
        Suspend start of new executions for given time.

        Items which are already executing are not affected. A block never
        shortens a longer block which is already in force.

        Args:
            durationMs: Block duration in milliseconds from now.
                Negative values are ignored (and logged).
        """
        if durationMs < 0:
            logger.warning(f"Queue '{self.name}': ignoring block for negative duration {durationMs}ms")
            return

        blockedUntil = time.monotonic() + durationMs / 1000
        if self._blockedUntil is not None and self._blockedUntil >= blockedUntil:
            logger.debug(f"Queue '{self.name}' is already blocked for {self.blockedFor():.2f} seconds")
            return

        self._blockedUntil = blockedUntil
        self._notifyBlockChanged()
        logger.info(f"Queue '{self.name}' blocked for {durationMs / 1000:.2f} seconds, dood!")

    def unblockQueue(self) -> None:
        """Lift current block immediately."""
        if self._blockedUntil is None:
            return
        self._blockedUntil = None
        self._notifyBlockChanged()
        logger.info(f"Queue '{self.name}' unblocked, dood!")

    def blockedFor(self) -> float:
        """Get seconds left until block ends (0.0 if not blocked)."""
        if self._blockedUntil is None:
            return 0.0
        remaining = self._blockedUntil - time.monotonic()
        if remaining <= 0:
            self._blockedUntil = None
            return 0.0
        return remaining

    def isBlocked(self) -> bool:
        return self.blockedFor() > 0

    @property
    def running(self) -> int:
        """Number of items executing right now."""
        return self._stats.running

    @property
    def pending(self) -> int:
        """Number of submitted items not finished yet."""
        return self._stats.waiting + self._stats.running

    def getStats(self) -> QueueStats:
        """
        Get snapshot of queue counters.

        Returns:
            QueueStats copy, blockedUntil is converted to unix timestamp
        """
        blockedFor = self.blockedFor()
        return replace(self._stats, blockedUntil=time.time() + blockedFor if blockedFor > 0 else None)

    async def join(self) -> None:
        """Wait until all items submitted so far are finished (errors are not raised)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def __repr__(self) -> str:
        return (
            f"RequestQueue(name={self.name!r}, running={self.running}, pending={self.pending}, "
            f"blockedFor={self.blockedFor():.2f})"
        )
