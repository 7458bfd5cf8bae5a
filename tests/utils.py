"""
Test utility functions and helpers.

This module provides fake remote clients and quota payloads for toolkit
tests, so no test talks to the real GitHub API.
"""

import asyncio
import time
from types import SimpleNamespace
from typing import Any, Dict, Optional
from unittest.mock import AsyncMock

from ghqueue.github import ApiResponse

# ============================================================================
# Errors
# ============================================================================


class FakeApiError(Exception):
    """Remote error carrying only a code, like any client error would."""

    def __init__(self, code: int, message: str = "fake error"):
        super().__init__(message)
        self.code = code


# ============================================================================
# Quota Payloads
# ============================================================================


def createQuotaResponse(exhausted: Optional[Dict[str, float]] = None, available: Optional[Dict[str, int]] = None) -> Dict[str, Any]:
    """
    Create quota status payload.

    Args:
        exhausted: Operation id -> reset unix time, reported with remaining 0
        available: Operation id -> remaining requests

    Example:
        createQuotaResponse({"repos.get": time.time() + 30})
    """
    core: Dict[str, Any] = {}
    for operationId, reset in (exhausted or {}).items():
        core[operationId] = {"remaining": 0, "reset": reset}
    for operationId, remaining in (available or {}).items():
        core[operationId] = {"remaining": remaining, "reset": int(time.time()) + 3600}
    return {"resources": {"core": core}}


def createAsyncMock(returnValue: Any = None, sideEffect: Any = None) -> AsyncMock:
    """Create AsyncMock returning ApiResponse wrapped returnValue."""
    mock = AsyncMock(side_effect=sideEffect)
    mock.return_value = ApiResponse(status=200, data=returnValue)
    return mock


# ============================================================================
# Fake Client
# ============================================================================


def createFakeClient(operations: Optional[Dict[str, AsyncMock]] = None, quota: Optional[Dict[str, Any]] = None) -> Any:
    """
    Create fake remote client whose attribute paths are operation ids.

    Args:
        operations: Operation id -> async mock taking params
        quota: Payload of misc.getRateLimit (default: nothing exhausted)

    Returns:
        Object with client.<namespace>.<name> async callables

    Example:
        client = createFakeClient({"repos.get": createAsyncMock({"id": 1})})
        await client.repos.get({"owner": "o", "repo": "r"})
    """
    allOperations: Dict[str, AsyncMock] = {
        "misc.getRateLimit": createAsyncMock(quota if quota is not None else createQuotaResponse()),
    }
    allOperations.update(operations or {})

    client = SimpleNamespace()
    for operationId, mock in allOperations.items():
        namespace, name = operationId.split(".", 1)
        if not hasattr(client, namespace):
            setattr(client, namespace, SimpleNamespace())
        setattr(getattr(client, namespace), name, mock)
    return client


def createGatedQuota(gate: asyncio.Event, quota: Optional[Dict[str, Any]] = None) -> AsyncMock:
    """Create quota operation which answers only after gate is set."""

    async def waitForGate(params):
        await gate.wait()
        return ApiResponse(status=200, data=quota if quota is not None else createQuotaResponse())

    return AsyncMock(side_effect=waitForGate)
