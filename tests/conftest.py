"""
Pytest configuration and common fixtures for ghqueue tests.

All fixtures follow camelCase naming convention.
"""

from typing import AsyncGenerator, Callable, List

import pytest

from ghqueue import GithubToolkit

# ============================================================================
# Toolkit Fixtures
# ============================================================================


@pytest.fixture
async def toolkitFactory() -> AsyncGenerator[Callable[..., GithubToolkit], None]:
    """
    Provide factory creating toolkits which are closed after the test.

    Progress bar and quota polling are off unless requested explicitly.

    Yields:
        Callable creating GithubToolkit with given keyword arguments
    """
    created: List[GithubToolkit] = []

    def factory(**kwargs) -> GithubToolkit:
        kwargs.setdefault("showProgressBar", False)
        kwargs.setdefault("autoFetchRateLimits", False)
        toolkit = GithubToolkit(**kwargs)
        created.append(toolkit)
        return toolkit

    yield factory

    for toolkit in created:
        await toolkit.aclose()
        # Initial fetch may still be waiting for a gated quota call
        if toolkit._initTask is not None and not toolkit._initTask.done():
            toolkit._initTask.cancel()
