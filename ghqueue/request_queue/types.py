"""Types for the request queue library."""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Awaitable, Callable, Optional, TypeAlias

WorkFunction: TypeAlias = Callable[[], Awaitable[Any]]
"""Deferred unit of work: async thunk returning a result or raising"""


class QueueEventType(StrEnum):
    SUCCESS = "success"
    """Item completed successfully"""
    FAILURE = "failure"
    """Item failed (no retry left or retry disabled)"""
    RETRY = "retry"
    """Item failed and was scheduled for another attempt"""


@dataclass
class QueueConfig:
    """
    Configuration for a single request queue.

    Attributes:
        maxConcurrent: Maximum number of items executing at the same time
        retry: Whether failing items are retried by default
        maxRetries: Maximum number of retries after the first attempt
        retryDelay: Delay in seconds before each retry attempt
    """

    maxConcurrent: int = 2
    retry: bool = True
    maxRetries: int = 3
    retryDelay: float = 0.0

    def __post_init__(self):
        """Validate configuration values"""
        if self.maxConcurrent <= 0:
            raise ValueError("maxConcurrent must be positive")
        if self.maxRetries < 0:
            raise ValueError("maxRetries must not be negative")
        if self.retryDelay < 0:
            raise ValueError("retryDelay must not be negative")


@dataclass
class WorkItem:
    """A unit of work submitted to a RequestQueue.

    Attributes:
        func: Async thunk to execute
        name: Display name for logs and progress
        retry: Per-item retry override, None means "use queue policy"
    """

    func: WorkFunction
    name: str = "work"
    retry: Optional[bool] = None
    attempts: int = field(default=0, init=False)


@dataclass
class QueueEvent:
    """Notification emitted by a RequestQueue to its listeners."""

    type: QueueEventType
    queueName: str
    itemName: str
    attempt: int
    error: Optional[BaseException] = None


QueueListener: TypeAlias = Callable[[QueueEvent], None]


@dataclass
class QueueStats:
    """Snapshot of queue counters."""

    submitted: int = 0
    waiting: int = 0
    running: int = 0
    succeeded: int = 0
    failed: int = 0
    retried: int = 0
    blockedUntil: Optional[float] = None
    """Unix timestamp when current block ends, None if not blocked"""

    @property
    def finished(self) -> int:
        return self.succeeded + self.failed
