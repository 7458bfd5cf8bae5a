"""Toolkit-wide defaults."""

from typing import Final

from .rate_limits.constants import DEFAULT_POLL_INTERVAL

MAX_CONCURRENT_FETCH: Final[int] = 2
"""Concurrent requests per operation queue"""
MAX_RETRIES: Final[int] = 3
"""Retries after the first attempt on retrying queues"""
RATE_LIMIT_AUTO_FETCH_INTERVAL: Final[float] = DEFAULT_POLL_INTERVAL
"""Seconds between quota refreshes"""
ON_RATE_LIMIT_TIMEOUT: Final[float] = 10.0
"""Seconds a queue stays blocked after a rate-limited response"""
