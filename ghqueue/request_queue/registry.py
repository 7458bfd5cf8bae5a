import logging
from typing import Callable, Dict, Iterator, List, Optional

from .queue import RequestQueue
from .types import QueueConfig, QueueStats

logger = logging.getLogger(__name__)


class QueueRegistry:
    """
    Registry of request queues keyed by operation id.

    Queues are created lazily on first use and live as long as the registry
    itself. This is a plain object (not a singleton): every
    toolkit instance owns its own registry, so several independent toolkits
    may live in one process.

    Usage:
        >>> registry = QueueRegistry(QueueConfig(maxConcurrent=2))
        >>> queue = registry.getOrCreateQueue("repos.get")
        >>> registry.getOrCreateQueue("repos.get") is queue
        True
    """

    def __init__(
        self,
        defaultConfig: Optional[QueueConfig] = None,
        onQueueCreated: Optional[Callable[[RequestQueue], None]] = None,
    ):
        """
        Initialize the registry.

        Args:
            defaultConfig: Config applied to newly created queues
            onQueueCreated: Optional hook called right after a queue is created
        """
        self.defaultConfig = defaultConfig if defaultConfig is not None else QueueConfig()
        self._onQueueCreated = onQueueCreated
        self._queues: Dict[str, RequestQueue] = {}

    def getQueue(self, name: str) -> Optional[RequestQueue]:
        """Get queue by name or None if it wasn't created yet."""
        return self._queues.get(name)

    def getOrCreateQueue(self, name: str, config: Optional[QueueConfig] = None) -> RequestQueue:
        """
        Get queue by name, creating it on first use.

        Creation is synchronous, so concurrent first calls from different
        coroutines always end up with the very same queue.

        Args:
            name: Queue name (operation id)
            config: Config for a new queue (default: registry default config).
                Ignored (with a warning) if the queue already exists with
                a different config.

        Returns:
            Existing or newly created queue
        """
        queue = self._queues.get(name)
        if queue is not None:
            if config is not None and config != queue.config:
                logger.warning(f"Queue '{name}' already exists with {queue.config}, ignoring new config {config}")
            return queue

        queue = RequestQueue(name, config if config is not None else self.defaultConfig)
        self._queues[name] = queue
        logger.debug(f"Registered queue '{name}', dood!")

        if self._onQueueCreated is not None:
            self._onQueueCreated(queue)

        return queue

    def listQueues(self) -> List[str]:
        """
        Get list of all known queue names.

        Example:
            >>> registry.listQueues()
            ['misc.getRateLimit', 'repos.get']
        """
        return list(self._queues.keys())

    def getStats(self) -> Dict[str, QueueStats]:
        """Get statistics for all queues."""
        return {name: queue.getStats() for name, queue in self._queues.items()}

    def __contains__(self, name: object) -> bool:
        return name in self._queues

    def __len__(self) -> int:
        return len(self._queues)

    def __iter__(self) -> Iterator[RequestQueue]:
        return iter(list(self._queues.values()))
