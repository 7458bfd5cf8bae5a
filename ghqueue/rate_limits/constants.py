from typing import Final

# GitHub allows 5000 quota checks per hour, but there is no need to check more often than every 10 seconds
DEFAULT_POLL_INTERVAL: Final[float] = 10.0
"""Seconds between quota status polls"""
