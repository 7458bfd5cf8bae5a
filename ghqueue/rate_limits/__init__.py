"""
Rate Limits Library

Tracks remote quota state and keeps request queues of exhausted operations
blocked until their quota resets.

Example:
    >>> tracker = RateLimitTracker(toolkit, toolkit.queues)
    >>> snapshot = await tracker.getRateLimits()  # {"repos.get": 1700000000.0}
    >>>
    >>> poller = RateLimitPoller(refresh, interval=10)
    >>> poller.start()
"""

from .constants import DEFAULT_POLL_INTERVAL
from .poller import RateLimitPoller
from .tracker import RateLimitTracker, flattenQuota
from .types import QuotaEntry, QuotaSnapshot, Requester

__all__ = [
    "DEFAULT_POLL_INTERVAL",
    "RateLimitPoller",
    "RateLimitTracker",
    "flattenQuota",
    "QuotaEntry",
    "QuotaSnapshot",
    "Requester",
]
