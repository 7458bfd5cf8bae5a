"""
Tests for GithubToolkit.

Covers readiness gating, failure translation, retries, lazy queue creation
and applying quota snapshots to queues. Remote client is faked, see
tests/utils.py.
"""

import asyncio
import time
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest

from ghqueue import GithubToolkit, resolveOperation
from ghqueue.config import ConfigManager
from ghqueue.github import ApiResponse, ConfigurationError, GithubClient
from ghqueue.progress import ProgressBarInterface
from ghqueue.request_queue import QueueConfig
from ghqueue.toolkit import extractData
from tests.utils import (
    FakeApiError,
    createAsyncMock,
    createFakeClient,
    createGatedQuota,
    createQuotaResponse,
)

REPO_PARAMS = {"owner": "python", "repo": "cpython"}

# ============================================================================
# Readiness Tests
# ============================================================================


class TestReadiness:
    """Test initial quota fetch and the ready signal."""

    async def testReadyAfterInitialFetch(self, toolkitFactory):
        """Test ready is set once quota was fetched."""
        client = createFakeClient()
        toolkit = toolkitFactory(client=client)

        toolkit.start()
        await asyncio.wait_for(toolkit.ready.wait(), timeout=1)

        assert toolkit.rateLimits == {}
        client.misc.getRateLimit.assert_awaited_once_with(None)

    async def testStartIsIdempotent(self, toolkitFactory):
        """Test repeated start() fetches quota once."""
        client = createFakeClient()
        toolkit = toolkitFactory(client=client)

        toolkit.start()
        toolkit.start()
        await asyncio.wait_for(toolkit.ready.wait(), timeout=1)

        assert client.misc.getRateLimit.await_count == 1

    async def testRequestWaitsForReady(self, toolkitFactory):
        """Test request doesn't reach the client before ready."""
        gate = asyncio.Event()
        repoMock = createAsyncMock({"id": 1})
        client = createFakeClient({"repos.get": repoMock})
        client.misc.getRateLimit = createGatedQuota(gate)
        toolkit = toolkitFactory(client=client)

        task = asyncio.create_task(toolkit.request("repos.get", REPO_PARAMS))
        await asyncio.sleep(0.05)

        assert not toolkit.ready.is_set()
        repoMock.assert_not_awaited()

        gate.set()
        assert await asyncio.wait_for(task, timeout=1) == {"id": 1}
        repoMock.assert_awaited_once_with(REPO_PARAMS)

    async def testNoWaitForReady(self, toolkitFactory):
        """Test noWaitForReady bypasses the ready gate."""
        gate = asyncio.Event()
        client = createFakeClient({"repos.get": createAsyncMock({"id": 1})})
        client.misc.getRateLimit = createGatedQuota(gate)
        toolkit = toolkitFactory(client=client)
        toolkit.start()

        result = await asyncio.wait_for(toolkit.request("repos.get", REPO_PARAMS, noWaitForReady=True), timeout=1)

        assert result == {"id": 1}
        assert not toolkit.ready.is_set()
        gate.set()

    async def testInitialFetchFailureStillReady(self, toolkitFactory):
        """Test failing quota call results in empty snapshot, not a deadlock."""
        client = createFakeClient()
        client.misc.getRateLimit = AsyncMock(side_effect=RuntimeError("quota is down"))
        toolkit = toolkitFactory(client=client)

        toolkit.start()
        await asyncio.wait_for(toolkit.ready.wait(), timeout=1)

        assert toolkit.rateLimits == {}
        # Quota call is never retried
        assert client.misc.getRateLimit.await_count == 1

    async def testQuotaNotFoundMeansNoLimits(self, toolkitFactory):
        """Test API without quota endpoint gives empty snapshot."""
        client = createFakeClient()
        client.misc.getRateLimit = AsyncMock(side_effect=FakeApiError(404))
        toolkit = toolkitFactory(client=client)

        toolkit.start()
        await asyncio.wait_for(toolkit.ready.wait(), timeout=1)

        assert toolkit.rateLimits == {}


# ============================================================================
# Request Tests
# ============================================================================


class TestRequest:
    """Test request() dispatching and failure translation."""

    async def testReturnsResponseData(self, toolkitFactory):
        """Test data attribute of response is returned."""
        repoMock = createAsyncMock({"full_name": "python/cpython"})
        toolkit = toolkitFactory(client=createFakeClient({"repos.get": repoMock}))

        result = await toolkit.request("repos.get", REPO_PARAMS)

        assert result == {"full_name": "python/cpython"}
        repoMock.assert_awaited_once_with(REPO_PARAMS)

    async def testMappingResponseData(self, toolkitFactory):
        """Test response given as mapping with "data" key."""
        repoMock = AsyncMock(return_value={"data": {"id": 1}})
        toolkit = toolkitFactory(client=createFakeClient({"repos.get": repoMock}))

        assert await toolkit.request("repos.get", REPO_PARAMS) == {"id": 1}

    @pytest.mark.parametrize("response", [{"id": 1}, None, 42])
    async def testResponseWithoutDataRaises(self, toolkitFactory, response):
        """Test response without data is an error, not a silent None."""
        repoMock = AsyncMock(return_value=response)
        toolkit = toolkitFactory(client=createFakeClient({"repos.get": repoMock}))

        with pytest.raises(TypeError):
            await toolkit.request("repos.get", REPO_PARAMS, retry=False)

    def testExtractData(self):
        """Test payload lookup for supported response shapes."""
        assert extractData(ApiResponse(status=200, data=[1, 2])) == [1, 2]
        assert extractData(ApiResponse(status=204, data=None)) is None
        assert extractData({"data": None, "status": 204}) is None
        with pytest.raises(TypeError):
            extractData({"status": 200})

    async def testNotFoundReturnsNone(self, toolkitFactory):
        """Test error code 404 gives None without retries."""
        repoMock = createAsyncMock(sideEffect=FakeApiError(404))
        toolkit = toolkitFactory(client=createFakeClient({"repos.get": repoMock}))

        assert await toolkit.request("repos.get", REPO_PARAMS) is None
        assert repoMock.await_count == 1

    async def testRateLimitedBlocksQueue(self, toolkitFactory):
        """Test error code 429 gives None and blocks the queue for the cooldown."""
        repoMock = createAsyncMock(sideEffect=FakeApiError(429))
        toolkit = toolkitFactory(client=createFakeClient({"repos.get": repoMock}))

        result = await toolkit.request("repos.get", REPO_PARAMS)

        assert result is None
        assert repoMock.await_count == 1
        queue = toolkit.queues.getQueue("repos.get")
        assert queue is not None
        assert queue.isBlocked()
        assert 8.5 < queue.blockedFor() <= 10.0
        # Other operations are not affected
        assert not toolkit.createQueue("users.getByUsername").isBlocked()

    async def testCustomRateLimitTimeout(self, toolkitFactory):
        """Test cooldown is configurable."""
        toolkit = toolkitFactory(
            client=createFakeClient({"repos.get": createAsyncMock(sideEffect=FakeApiError(429))}),
            rateLimitTimeout=60,
        )

        await toolkit.request("repos.get", REPO_PARAMS)

        assert toolkit.queues.getQueue("repos.get").blockedFor() > 58

    async def testOtherErrorsAreRetriedThenRaised(self, toolkitFactory):
        """Test unrecognised errors go through the retry policy and propagate."""
        repoMock = createAsyncMock(sideEffect=FakeApiError(500, "server error"))
        toolkit = toolkitFactory(
            client=createFakeClient({"repos.get": repoMock}),
            queueConfig=QueueConfig(maxRetries=2),
        )

        with pytest.raises(FakeApiError) as excInfo:
            await toolkit.request("repos.get", REPO_PARAMS)

        assert excInfo.value.code == 500
        assert repoMock.await_count == 3

    async def testRetryOverride(self, toolkitFactory):
        """Test retry=False makes a single attempt."""
        repoMock = createAsyncMock(sideEffect=ValueError("broken"))
        toolkit = toolkitFactory(client=createFakeClient({"repos.get": repoMock}))

        with pytest.raises(ValueError):
            await toolkit.request("repos.get", REPO_PARAMS, retry=False)

        assert repoMock.await_count == 1

    async def testTransientErrorRecovers(self, toolkitFactory):
        """Test item succeeds after a failed attempt."""
        repoMock = createAsyncMock({"id": 1})
        repoMock.side_effect = [FakeApiError(502), repoMock.return_value]
        toolkit = toolkitFactory(client=createFakeClient({"repos.get": repoMock}))

        assert await toolkit.request("repos.get", REPO_PARAMS) == {"id": 1}
        assert repoMock.await_count == 2

    async def testUnknownOperation(self, toolkitFactory):
        """Test unknown operation id raises before anything is queued."""
        toolkit = toolkitFactory(client=createFakeClient())

        with pytest.raises(AttributeError):
            await toolkit.request("repos.doesNotExist", REPO_PARAMS)

        assert "repos.doesNotExist" not in toolkit.queues

    async def testQueuesCreatedOncePerOperation(self, toolkitFactory):
        """Test concurrent first requests share one queue with the concurrency cap."""
        active = 0
        maxActive = 0

        async def fetchRepo(params):
            nonlocal active, maxActive
            active += 1
            maxActive = max(maxActive, active)
            await asyncio.sleep(0.02)
            active -= 1
            return SimpleNamespace(data=params["repo"])

        toolkit = toolkitFactory(client=createFakeClient({"repos.get": AsyncMock(side_effect=fetchRepo)}))

        results = await asyncio.gather(
            *[toolkit.request("repos.get", {"owner": "o", "repo": f"r{i}"}) for i in range(8)]
        )

        assert results == [f"r{i}" for i in range(8)]
        assert sorted(toolkit.queues.listQueues()) == ["misc.getRateLimit", "repos.get"]
        assert maxActive == 2

    async def testProgressBarUpdatedOnEvents(self, toolkitFactory):
        """Test progress display is updated on queue events and removed on close."""
        progressBar = Mock(spec=ProgressBarInterface)
        toolkit = toolkitFactory(
            client=createFakeClient({"repos.get": createAsyncMock({"id": 1})}),
            progressBar=progressBar,
        )

        await toolkit.request("repos.get", REPO_PARAMS)
        assert progressBar.update.called

        toolkit.close()
        progressBar.removeBar.assert_called_once()


# ============================================================================
# Rate Limit Tests
# ============================================================================


class TestRateLimits:
    """Test quota snapshots and their effect on queues."""

    async def testSnapshotBlocksNewQueue(self, toolkitFactory):
        """Test queue created after the snapshot is blocked until reset."""
        reset = time.time() + 30
        client = createFakeClient(quota=createQuotaResponse({"repos.get": reset}, {"users.getByUsername": 10}))
        toolkit = toolkitFactory(client=client)

        toolkit.start()
        await asyncio.wait_for(toolkit.ready.wait(), timeout=1)

        assert toolkit.rateLimits == {"repos.get": reset}
        assert "repos.get" not in toolkit.queues

        queue = toolkit.createQueue("repos.get")
        assert queue.isBlocked()
        assert 28 < queue.blockedFor() <= 30
        assert not toolkit.createQueue("users.getByUsername").isBlocked()

    async def testSnapshotBlocksExistingQueue(self, toolkitFactory):
        """Test getRateLimits() blocks queues which already exist."""
        reset = time.time() + 20
        client = createFakeClient(quota=createQuotaResponse({"repos.get": reset}))
        toolkit = toolkitFactory(client=client)
        queue = toolkit.createQueue("repos.get")

        snapshot = await toolkit.getRateLimits()

        assert snapshot == {"repos.get": reset}
        assert toolkit.rateLimits is snapshot
        assert 18 < queue.blockedFor() <= 20

    async def testSetRateLimitOnQueue(self, toolkitFactory):
        """Test manual block by reset timestamp."""
        toolkit = toolkitFactory(client=createFakeClient())
        queue = toolkit.createQueue("repos.get")

        toolkit.setRateLimitOnQueue("repos.get", time.time() + 5)
        toolkit.setRateLimitOnQueue("users.getByUsername", time.time() + 5)

        assert 4 < queue.blockedFor() <= 5
        assert "users.getByUsername" not in toolkit.queues

    async def testPollerReplacesSnapshot(self, toolkitFactory):
        """Test periodic refresh replaces the stored snapshot."""
        client = createFakeClient()
        exhausted = createQuotaResponse({"repos.get": time.time() + 30})
        responses = [exhausted, createQuotaResponse()]

        async def quota(params):
            data = responses.pop(0) if responses else createQuotaResponse()
            return SimpleNamespace(data=data)

        client.misc.getRateLimit = AsyncMock(side_effect=quota)
        toolkit = toolkitFactory(client=client, autoFetchRateLimits=True, rateLimitPollInterval=0.05)

        toolkit.start()
        await asyncio.wait_for(toolkit.ready.wait(), timeout=1)
        assert "repos.get" in toolkit.rateLimits

        await asyncio.sleep(0.15)
        assert toolkit.rateLimits == {}
        assert client.misc.getRateLimit.await_count >= 2

    async def testCloseStopsPoller(self, toolkitFactory):
        """Test no quota calls happen after close()."""
        client = createFakeClient()
        toolkit = toolkitFactory(client=client, autoFetchRateLimits=True, rateLimitPollInterval=0.03)

        toolkit.start()
        await asyncio.sleep(0.1)
        toolkit.close()
        calls = client.misc.getRateLimit.await_count

        await asyncio.sleep(0.1)
        assert client.misc.getRateLimit.await_count == calls
        assert not toolkit.poller.isRunning

    async def testRequestAfterCloseDoesNotRestartPolling(self, toolkitFactory):
        """Test requests pending at or issued after close() don't revive the poller."""
        client = createFakeClient({"repos.get": createAsyncMock({"id": 1})})
        toolkit = toolkitFactory(client=client, autoFetchRateLimits=True, rateLimitPollInterval=0.02)

        pending = asyncio.create_task(toolkit.request("repos.get", REPO_PARAMS))
        toolkit.close()

        assert await asyncio.wait_for(pending, timeout=1) == {"id": 1}
        assert await asyncio.wait_for(toolkit.request("repos.get", REPO_PARAMS), timeout=1) == {"id": 1}
        await asyncio.sleep(0.1)

        assert not toolkit.poller.isRunning
        assert toolkit._initTask is None
        assert toolkit.ready.is_set()
        client.misc.getRateLimit.assert_not_awaited()

    async def testCloseDuringInitialFetch(self, toolkitFactory):
        """Test close() while quota is being fetched still releases waiting requests."""
        gate = asyncio.Event()
        client = createFakeClient({"repos.get": createAsyncMock({"id": 1})})
        client.misc.getRateLimit = createGatedQuota(gate)
        toolkit = toolkitFactory(client=client, autoFetchRateLimits=True, rateLimitPollInterval=0.05)

        pending = asyncio.create_task(toolkit.request("repos.get", REPO_PARAMS))
        await asyncio.sleep(0.01)
        toolkit.close()
        gate.set()

        assert await asyncio.wait_for(pending, timeout=1) == {"id": 1}
        await asyncio.sleep(0.1)
        assert not toolkit.poller.isRunning
        assert client.misc.getRateLimit.await_count == 1

    async def testNoPollerWithoutAutoFetch(self, toolkitFactory):
        """Test autoFetchRateLimits=False fetches quota only once."""
        toolkit = toolkitFactory(client=createFakeClient(), autoFetchRateLimits=False)

        async with toolkit:
            await asyncio.wait_for(toolkit.ready.wait(), timeout=1)
            assert toolkit.poller is None


# ============================================================================
# Construction Tests
# ============================================================================


class TestConstruction:
    """Test client creation and configuration."""

    async def testDefaultClient(self):
        """Test GithubClient is created from auth and closed by aclose()."""
        toolkit = GithubToolkit(auth={"token": "ghp_test"}, showProgressBar=False, autoFetchRateLimits=False)

        assert isinstance(toolkit.client, GithubClient)
        assert toolkit.client.token == "ghp_test"
        assert toolkit.queues.defaultConfig == QueueConfig(maxConcurrent=2, retry=True, maxRetries=3)

        toolkit.client.aclose = AsyncMock()
        await toolkit.aclose()
        toolkit.client.aclose.assert_awaited_once()

    async def testForeignClientIsNotClosed(self, toolkitFactory):
        """Test client passed in is left open."""
        client = createFakeClient()
        client.aclose = AsyncMock()
        toolkit = toolkitFactory(client=client)

        await toolkit.aclose()

        client.aclose.assert_not_awaited()

    async def testFromConfig(self, tmp_path):
        """Test toolkit options are read from config tables."""
        configPath = tmp_path / "config.toml"
        configPath.write_text(
            """
[github]
token = "ghp_from_config"
base-url = "https://github.example.com/api/v3"
timeout = 5

[toolkit]
auto-fetch-rate-limits = true
show-progress-bar = false
poll-interval = 2.5
rate-limit-timeout = 30

[queue]
max-concurrent = 4
max-retries = 1
"""
        )
        configManager = ConfigManager(str(configPath), dotEnvFile=str(tmp_path / ".env"))

        toolkit = GithubToolkit.fromConfig(configManager)

        assert isinstance(toolkit.client, GithubClient)
        assert toolkit.client.token == "ghp_from_config"
        assert toolkit.client.baseUrl == "https://github.example.com/api/v3"
        assert toolkit.client.timeout == 5
        assert toolkit.queues.defaultConfig == QueueConfig(maxConcurrent=4, retry=True, maxRetries=1)
        assert toolkit.poller is not None
        assert toolkit.poller.interval == 2.5
        assert toolkit.rateLimitTimeout == 30
        assert toolkit.progressBar is None
        await toolkit.aclose()

    @pytest.mark.parametrize(
        "tables",
        [
            '[queue]\nmax-concurrent = 0\n',
            '[queue]\nmax-retries = "many"\n',
            '[toolkit]\npoll-interval = 0\n',
            '[toolkit]\nrate-limit-timeout = -1\n',
            '[toolkit]\npoll-interval = "soon"\n',
        ],
    )
    def testFromConfigInvalidValues(self, tmp_path, tables):
        """Test invalid toolkit or queue values raise ConfigurationError."""
        configPath = tmp_path / "config.toml"
        configPath.write_text('[github]\ntoken = "ghp_from_config"\n' + tables)
        configManager = ConfigManager(str(configPath), dotEnvFile=str(tmp_path / ".env"))

        with pytest.raises(ConfigurationError):
            GithubToolkit.fromConfig(configManager, showProgressBar=False)

    def testResolveOperation(self):
        """Test dotted path lookup on the client."""
        client = createFakeClient({"repos.get": createAsyncMock()})

        assert resolveOperation(client, "repos.get") is client.repos.get
        with pytest.raises(AttributeError):
            resolveOperation(client, "repos.missing")
        with pytest.raises(AttributeError):
            resolveOperation(SimpleNamespace(repos=SimpleNamespace(get="not callable")), "repos.get")
