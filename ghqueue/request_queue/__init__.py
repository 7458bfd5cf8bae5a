"""
Request Queue Library

Bounded-concurrency work queues which can be blocked until a given time,
plus a registry creating one queue per operation id on first use.

Example:
    >>> from ghqueue.request_queue import QueueConfig, QueueRegistry
    >>>
    >>> registry = QueueRegistry(QueueConfig(maxConcurrent=2, maxRetries=3))
    >>> queue = registry.getOrCreateQueue("repos.get")
    >>> data = await queue.add(fetchRepo, name="repos.get {\"id\":1}")
    >>> queue.blockQueue(5000)  # nothing new starts for 5 seconds
"""

from .queue import RequestQueue
from .registry import QueueRegistry
from .types import (
    QueueConfig,
    QueueEvent,
    QueueEventType,
    QueueListener,
    QueueStats,
    WorkFunction,
    WorkItem,
)

__all__ = [
    "RequestQueue",
    "QueueRegistry",
    "QueueConfig",
    "QueueEvent",
    "QueueEventType",
    "QueueListener",
    "QueueStats",
    "WorkFunction",
    "WorkItem",
]
