"""Type definitions for the rate limits library."""

from typing import Any, Awaitable, Dict, NotRequired, Optional, Protocol, TypeAlias, TypedDict

QuotaSnapshot: TypeAlias = Dict[str, float]
"""Operation id -> unix timestamp of quota reset, only for exhausted operations"""


class QuotaEntry(TypedDict):
    """Quota state of a single operation as reported by the API.

    Attributes:
        remaining: Requests left in current window
        reset: Unix timestamp when the window resets
    """

    remaining: int
    reset: NotRequired[Optional[float]]


class Requester(Protocol):
    """Anything able to dispatch a named operation (the toolkit)."""

    def request(
        self,
        operationId: str,
        params: Optional[Dict[str, Any]] = None,
        *,
        noWaitForReady: bool = False,
        retry: Optional[bool] = None,
    ) -> Awaitable[Any]: ...
