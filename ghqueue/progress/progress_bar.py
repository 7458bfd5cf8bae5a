"""
Progress bar over all request queues, rendered with tqdm.
"""

import logging
import time
from typing import Any, Dict, Optional

from tqdm.auto import tqdm

from ..request_queue import QueueRegistry
from .interface import ProgressBarInterface

logger = logging.getLogger(__name__)

# Limit redraw rate, every finished request calls update()
MIN_UPDATE_INTERVAL = 0.1


class TqdmProgressBar(ProgressBarInterface):
    """
    Single tqdm bar summarising every queue of a registry.

    Total is the number of submitted requests, progress is the number of
    finished ones (successful or failed). Postfix shows running requests and
    blocked queues. The bar is created lazily on first update() so idle
    toolkits don't draw anything.

    Example:
        >>> bar = TqdmProgressBar(toolkit.queues, description="GitHub")
        >>> bar.update()
        >>> bar.removeBar()
    """

    def __init__(
        self,
        queues: QueueRegistry,
        description: str = "requests",
        leave: bool = False,
        minUpdateInterval: float = MIN_UPDATE_INTERVAL,
        **tqdmKwargs: Any,
    ):
        """
        Initialize progress bar.

        Args:
            queues: Registry to report on
            description: Bar description
            leave: Keep bar on screen after removeBar()
            minUpdateInterval: Minimal seconds between redraws
            **tqdmKwargs: Extra arguments for tqdm
        """
        self.queues = queues
        self.description = description
        self.leave = leave
        self.minUpdateInterval = minUpdateInterval
        self.tqdmKwargs = tqdmKwargs
        self.bar: Optional[tqdm] = None
        self._lastUpdate = 0.0

    def _createBar(self) -> tqdm:
        kwargs: Dict[str, Any] = {
            "desc": self.description,
            "total": 0,
            "unit": "req",
            "dynamic_ncols": True,
            "leave": self.leave,
        }
        kwargs.update(self.tqdmKwargs)
        return tqdm(**kwargs)

    def update(self) -> None:
        now = time.monotonic()
        if self.bar is not None and now - self._lastUpdate < self.minUpdateInterval:
            return
        self._lastUpdate = now

        if self.bar is None:
            self.bar = self._createBar()

        submitted = 0
        finished = 0
        running = 0
        blocked = []
        for name, stats in self.queues.getStats().items():
            submitted += stats.submitted
            finished += stats.finished
            running += stats.running
            if stats.blockedUntil is not None:
                blocked.append(name)

        self.bar.total = submitted
        self.bar.n = finished
        postfix = f"running={running}"
        if blocked:
            postfix += f", blocked={','.join(sorted(blocked))}"
        self.bar.set_postfix_str(postfix, refresh=False)
        self.bar.refresh()

    def removeBar(self) -> None:
        if self.bar is not None:
            # Final redraw, last updates may have been throttled
            self._lastUpdate = 0.0
            self.update()
            self.bar.close()
            self.bar = None
            logger.debug("Progress bar removed")
