"""
GitHub Toolkit

Entry point of ghqueue: dispatches named GitHub operations through per
operation request queues, keeps track of exhausted quotas and blocks the
affected queues until their quota resets, dood!

Example:
    >>> async with GithubToolkit(auth={"token": "ghp_..."}) as toolkit:
    ...     repo = await toolkit.request("repos.get", {"owner": "python", "repo": "cpython"})
    ...     missing = await toolkit.request("repos.get", {"owner": "nobody", "repo": "nothing"})
    ...     assert missing is None
"""

import asyncio
import logging
import time
from collections.abc import Mapping
from typing import Any, Dict, Optional

from . import utils
from .config import ConfigManager
from .constants import (
    MAX_CONCURRENT_FETCH,
    MAX_RETRIES,
    ON_RATE_LIMIT_TIMEOUT,
    RATE_LIMIT_AUTO_FETCH_INTERVAL,
)
from .github import ConfigurationError, GithubClient
from .github.constants import (
    API_BASE_URL,
    DEFAULT_TIMEOUT,
    ERROR_CODE_RESOURCE_NOT_FOUND,
    ERROR_CODE_RATE_LIMIT_EXCEEDED,
    OPERATION_GET_RATE_LIMIT,
)
from .progress import ProgressBarInterface, TqdmProgressBar
from .rate_limits import QuotaSnapshot, RateLimitPoller, RateLimitTracker
from .request_queue import QueueConfig, QueueEvent, QueueRegistry, RequestQueue

logger = logging.getLogger(__name__)


def resolveOperation(client: Any, operationId: str) -> Any:
    """
    Resolve dotted operation id to a callable of the client.

    Example:
        >>> resolveOperation(client, "repos.get")  # client.repos.get

    Raises:
        AttributeError: If some part of the path doesn't exist or the result
            isn't callable
    """
    target = client
    for part in operationId.split("."):
        target = getattr(target, part, None)
        if target is None:
            raise AttributeError(f"Unknown operation '{operationId}'")
    if not callable(target):
        raise AttributeError(f"Operation '{operationId}' is not callable")
    return target


def extractData(response: Any) -> Any:
    """
    Get payload of a remote response.

    Both objects with ``data`` attribute (ApiResponse) and mappings with
    "data" key are accepted.

    Raises:
        TypeError: If response has no data at all
    """
    if isinstance(response, Mapping):
        if "data" in response:
            return response["data"]
    elif hasattr(response, "data"):
        return response.data
    raise TypeError(f"Unsupported response without data: {type(response).__name__}")


class GithubToolkit:
    """
    Rate-limit-aware dispatcher in front of a GitHub API client.

    Every operation id gets its own request queue (created on first use)
    limiting concurrency and retrying failed calls. Quota state is fetched
    once on start and then refreshed periodically. Queues of exhausted
    operations are blocked until the reported reset time.

    Nothing waits for the initial quota fetch except request(): it awaits
    ``ready`` unless called with ``noWaitForReady=True``.

    Attributes:
        client: Remote client, operation ids are attribute paths on it
        queues: Registry of per-operation queues
        rateLimits: Last quota snapshot (operation id -> reset unix time)
        ready: Set once the initial quota fetch finished (even if it failed)
        progressBar: Progress display or None
    """

    def __init__(
        self,
        auth: Optional[Dict[str, Any]] = None,
        autoFetchRateLimits: bool = True,
        showProgressBar: bool = True,
        progressBar: Optional[ProgressBarInterface] = None,
        client: Optional[Any] = None,
        queueConfig: Optional[QueueConfig] = None,
        rateLimitPollInterval: float = RATE_LIMIT_AUTO_FETCH_INTERVAL,
        rateLimitTimeout: float = ON_RATE_LIMIT_TIMEOUT,
        quotaOperation: str = OPERATION_GET_RATE_LIMIT,
    ):
        """
        Initialize toolkit.

        Nothing is started here, use start() or ``async with`` (first
        request() starts toolkit as well).

        Args:
            auth: Authentication options, {"token": "..."}
            autoFetchRateLimits: Refresh quota state periodically
            showProgressBar: Display progress of all queues
            progressBar: Custom progress display (implies showProgressBar)
            client: Remote client to use instead of GithubClient
            queueConfig: Config for newly created queues
            rateLimitPollInterval: Seconds between quota refreshes
            rateLimitTimeout: Seconds to block queue after rate limited response
            quotaOperation: Operation id returning quota state
        """
        self._ownsClient = client is None
        if client is None:
            client = GithubClient(token=(auth or {}).get("token"))
        elif auth and auth.get("token") and hasattr(client, "authenticate"):
            client.authenticate(auth["token"])
        self.client = client

        if queueConfig is None:
            queueConfig = QueueConfig(maxConcurrent=MAX_CONCURRENT_FETCH, retry=True, maxRetries=MAX_RETRIES)
        self.queues = QueueRegistry(queueConfig, onQueueCreated=self._onQueueCreated)
        self.rateLimits: QuotaSnapshot = {}
        self.rateLimitTimeout = rateLimitTimeout
        self.ready = asyncio.Event()

        self.tracker = RateLimitTracker(self, self.queues, quotaOperation=quotaOperation)
        self.poller: Optional[RateLimitPoller] = None
        if autoFetchRateLimits:
            self.poller = RateLimitPoller(self._refreshRateLimits, interval=rateLimitPollInterval)

        self.progressBar: Optional[ProgressBarInterface] = None
        if progressBar is not None:
            self.progressBar = progressBar
        elif showProgressBar:
            self.progressBar = TqdmProgressBar(self.queues)

        self._initTask: Optional[asyncio.Task] = None
        self._closed = False

    @classmethod
    def fromConfig(cls, configManager: ConfigManager, **kwargs) -> "GithubToolkit":
        """
        Create toolkit from [github], [toolkit] and [queue] config tables.

        Keyword arguments override values from config.

        Raises:
            ConfigurationError: If some value has wrong type or is out of range
        """
        githubConfig = configManager.getGithubConfig()
        toolkitConfig = configManager.getToolkitConfig()
        queueConfig = configManager.getQueueConfig()

        try:
            kwargs.setdefault(
                "queueConfig",
                QueueConfig(
                    maxConcurrent=int(queueConfig.get("max-concurrent", MAX_CONCURRENT_FETCH)),
                    retry=bool(queueConfig.get("retry", True)),
                    maxRetries=int(queueConfig.get("max-retries", MAX_RETRIES)),
                    retryDelay=float(queueConfig.get("retry-delay", 0.0)),
                ),
            )
            kwargs.setdefault("autoFetchRateLimits", bool(toolkitConfig.get("auto-fetch-rate-limits", True)))
            kwargs.setdefault("showProgressBar", bool(toolkitConfig.get("show-progress-bar", True)))
            kwargs.setdefault(
                "rateLimitPollInterval", float(toolkitConfig.get("poll-interval", RATE_LIMIT_AUTO_FETCH_INTERVAL))
            )
            kwargs.setdefault(
                "rateLimitTimeout", float(toolkitConfig.get("rate-limit-timeout", ON_RATE_LIMIT_TIMEOUT))
            )
            timeout = float(githubConfig.get("timeout", DEFAULT_TIMEOUT))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid [queue], [toolkit] or [github] configuration: {e}") from e

        if kwargs["rateLimitPollInterval"] <= 0:
            raise ConfigurationError(f"poll-interval must be positive, got {kwargs['rateLimitPollInterval']}")
        if kwargs["rateLimitTimeout"] < 0:
            raise ConfigurationError(f"rate-limit-timeout must not be negative, got {kwargs['rateLimitTimeout']}")
        if timeout <= 0:
            raise ConfigurationError(f"timeout must be positive, got {timeout}")

        ownsClient = "client" not in kwargs
        if ownsClient:
            kwargs["client"] = GithubClient(
                token=githubConfig.get("token"),
                baseUrl=githubConfig.get("base-url", API_BASE_URL),
                timeout=timeout,
            )

        toolkit = cls(**kwargs)
        toolkit._ownsClient = ownsClient
        return toolkit

    def start(self) -> "GithubToolkit":
        """
        Start initial quota fetch and quota polling.

        Must be called from a running event loop. Calling it again does
        nothing. Closed toolkit is never started again, it only releases
        callers waiting for ``ready``.
        """
        if self._closed:
            self.ready.set()
            return self
        if self._initTask is not None:
            return self

        self._initTask = asyncio.create_task(self._init(), name="github-toolkit-init")
        if self.poller is not None:
            self.poller.start()
        return self

    async def _init(self) -> None:
        try:
            self.rateLimits = await self.tracker.getRateLimits()
        except Exception as e:
            logger.error(f"Failed to fetch initial rate limits: {type(e).__name__}#{e}")
            logger.exception(e)
            self.rateLimits = {}
        finally:
            self.ready.set()
        logger.info("GithubToolkit is ready, dood!")

    async def _refreshRateLimits(self) -> None:
        self.rateLimits = await self.tracker.getRateLimits()

    async def getRateLimits(self) -> QuotaSnapshot:
        """
        Fetch quota state now, block exhausted queues and store the snapshot.

        Returns:
            New snapshot (operation id -> reset unix time)
        """
        self.rateLimits = await self.tracker.getRateLimits()
        return self.rateLimits

    def setRateLimitOnQueue(self, operationId: str, reset: float) -> None:
        """Block queue of operationId until reset (unix time), if such queue exists."""
        self.tracker.setRateLimitOnQueue(operationId, reset)

    def _onQueueCreated(self, queue: RequestQueue) -> None:
        queue.addListener(self._onQueueEvent)

        reset = self.rateLimits.get(queue.name)
        if reset:
            self.tracker.setRateLimitOnQueue(queue.name, reset)

    def _onQueueEvent(self, event: QueueEvent) -> None:
        if self.progressBar is not None:
            self.progressBar.update()

    def createQueue(self, operationId: str, config: Optional[QueueConfig] = None) -> RequestQueue:
        """
        Get queue for operationId, creating it if needed.

        New queue is blocked right away if the current snapshot says its
        quota is exhausted. config applies only to a new queue, config of
        existing queue is kept (and a warning is logged if it differs).
        """
        return self.queues.getOrCreateQueue(operationId, config)

    async def request(
        self,
        operationId: str,
        params: Optional[Dict[str, Any]] = None,
        *,
        noWaitForReady: bool = False,
        retry: Optional[bool] = None,
    ) -> Any:
        """
        Call remote operation through its queue.

        Args:
            operationId: Dotted operation id, e.g. "repos.get"
            params: Operation parameters
            noWaitForReady: Don't wait for the initial quota fetch
            retry: Per-call retry override, None means queue policy

        Returns:
            Response data, None if the resource wasn't found or the call was
            rate limited (queue gets blocked for ``rateLimitTimeout`` seconds)

        Raises:
            AttributeError: If the client has no such operation
            Exception: Any other error of the remote call once retries are
                exhausted
        """
        if not noWaitForReady:
            self.start()
            await self.ready.wait()

        operation = resolveOperation(self.client, operationId)
        queue = self.createQueue(operationId)
        name = utils.describeOperation(operationId, params)

        async def work() -> Any:
            try:
                response = await operation(params)
            except Exception as e:
                code = getattr(e, "code", None)
                if code == ERROR_CODE_RESOURCE_NOT_FOUND:
                    logger.debug(f"{name}: not found")
                    return None
                if code == ERROR_CODE_RATE_LIMIT_EXCEEDED:
                    logger.warning(f"{name}: rate limited, blocking queue for {self.rateLimitTimeout}s, dood!")
                    self.tracker.setRateLimitOnQueue(operationId, time.time() + self.rateLimitTimeout)
                    return None
                raise
            return extractData(response)

        return await queue.add(work, name=name, retry=retry)

    def close(self) -> None:
        """
        Stop quota polling and remove progress display.

        Pending and running requests are not cancelled, requests made after
        close() are still executed but never restart quota polling.
        """
        self._closed = True
        if self.poller is not None:
            self.poller.stop()
        if self.progressBar is not None:
            self.progressBar.removeBar()
        logger.debug("GithubToolkit closed")

    async def aclose(self) -> None:
        """close() and also close the HTTP client if toolkit created it."""
        self.close()
        if self._ownsClient and hasattr(self.client, "aclose"):
            await self.client.aclose()

    async def __aenter__(self) -> "GithubToolkit":
        return self.start()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
