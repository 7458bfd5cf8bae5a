"""
Rate Limit Tracker

Fetches quota status of the remote API, finds operations whose quota is
exhausted and blocks their queues until the reported reset time, dood!

Expected quota response shape (grouped categories of per-operation entries)::

    {
        "resources": {
            "core": {
                "repos.get": {"remaining": 0, "reset": 1700000000},
                "users.getByUsername": {"remaining": 4999, "reset": 1700000000},
            },
            "search": {...},
        }
    }
"""

import logging
import time
from collections.abc import Mapping
from typing import Any, Dict

from ..github.constants import OPERATION_GET_RATE_LIMIT
from ..request_queue import QueueRegistry
from .types import QuotaEntry, QuotaSnapshot, Requester

logger = logging.getLogger(__name__)


def flattenQuota(resources: Mapping[str, Any]) -> Dict[str, QuotaEntry]:
    """
    Merge grouped quota categories into one operation -> entry mapping.

    Groups and entries which are not mappings are skipped. If the same
    operation appears in several groups, the last one wins.

    Args:
        resources: The "resources" part of quota response

    Returns:
        Flat mapping of operation id to its quota entry
    """
    allLimits: Dict[str, QuotaEntry] = {}
    for group in resources.values():
        if not isinstance(group, Mapping):
            continue
        for operationId, entry in group.items():
            if isinstance(entry, Mapping):
                allLimits[operationId] = entry  # type: ignore[assignment]
    return allLimits


class RateLimitTracker:
    """
    Derives quota snapshots and applies them to queues.

    Attributes:
        requester: Object dispatching the quota status operation
        registry: Queue registry whose queues get blocked
        quotaOperation: Operation id of quota status call
    """

    def __init__(
        self,
        requester: Requester,
        registry: QueueRegistry,
        quotaOperation: str = OPERATION_GET_RATE_LIMIT,
    ):
        self.requester = requester
        self.registry = registry
        self.quotaOperation = quotaOperation

    async def getRateLimits(self) -> QuotaSnapshot:
        """
        Fetch quota status and block queues of exhausted operations.

        The quota call itself doesn't wait for toolkit readiness (it is what
        makes toolkit ready) and isn't retried.

        Returns:
            Snapshot of exhausted operations and their reset timestamps.
            Empty if quota checking isn't supported by the API.
        """
        response = await self.requester.request(self.quotaOperation, None, noWaitForReady=True, retry=False)

        resources = response.get("resources") if isinstance(response, Mapping) else None
        if not isinstance(resources, Mapping):
            logger.info(f"No quota information in '{self.quotaOperation}' response, assuming no limits")
            return {}

        snapshot: QuotaSnapshot = {}
        for operationId, entry in flattenQuota(resources).items():
            remaining = entry.get("remaining")
            reset = entry.get("reset")
            if reset and remaining is not None and remaining < 1:
                snapshot[operationId] = float(reset)
                self.setRateLimitOnQueue(operationId, reset)

        if snapshot:
            logger.info(f"Quota exhausted for {len(snapshot)} operation(s): {sorted(snapshot)}, dood!")
        else:
            logger.debug("No exhausted quotas")

        return snapshot

    def setRateLimitOnQueue(self, operationId: str, reset: float) -> None:
        """
        Block queue of given operation until reset time.

        Does nothing if queue wasn't created yet or reset time already passed.

        Args:
            operationId: Operation (queue) id
            reset: Unix timestamp when quota resets
        """
        queue = self.registry.getQueue(operationId)
        if queue is None:
            return

        unblockIn = float(reset) * 1000 - time.time() * 1000
        if unblockIn < 0:
            logger.warning(f"Quota reset for '{operationId}' is already in the past ({reset}), not blocking")
            return

        queue.blockQueue(unblockIn)
