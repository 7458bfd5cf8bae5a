"""Progress display for request queues."""

from .interface import ProgressBarInterface
from .progress_bar import TqdmProgressBar

__all__ = [
    "ProgressBarInterface",
    "TqdmProgressBar",
]
