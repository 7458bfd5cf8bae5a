"""
GitHub REST API Async Client

This module provides the GithubClient class: a thin httpx-based client which
exposes GitHub REST operations by dotted operation id (``repos.get``,
``misc.getRateLimit``, ...). Each operation is an async callable taking one
params dict, so the toolkit can address any of them by name.

The client makes exactly one HTTP request per call and doesn't retry: retries
and rate limiting are handled by the request queues in front of it.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple
from urllib.parse import quote

import httpx

from .constants import (
    API_BASE_URL,
    API_VERSION,
    AUTH_HEADER,
    AUTH_TYPE_TOKEN,
    CONTENT_TYPE_JSON,
    DEFAULT_TIMEOUT,
    ENDPOINTS,
    HTTP_DELETE,
    HTTP_GET,
    VERSION,
)
from .exceptions import GithubError, NetworkError, ValidationError, parseApiError

logger = logging.getLogger(__name__)

PATH_PARAM_RE = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")

Operation = Callable[[Optional[Dict[str, Any]]], Awaitable["ApiResponse"]]


@dataclass
class ApiResponse:
    """Successful API response.

    Attributes:
        status: HTTP status code
        data: Parsed JSON body (None for empty body)
        headers: Response headers (lowercase names)
    """

    status: int
    data: Any
    headers: Dict[str, str] = field(default_factory=dict)


class OperationNamespace:
    """Group of operations sharing the same prefix (e.g. ``repos``).

    Attribute access returns async callable for the operation, so
    ``client.repos.get({"owner": "o", "repo": "r"})`` calls ``repos.get``.
    """

    def __init__(self, client: "GithubClient", name: str):
        self._client = client
        self._name = name

    def __getattr__(self, name: str) -> Operation:
        if name.startswith("_"):
            raise AttributeError(name)

        operationId = f"{self._name}.{name}"
        if operationId not in self._client.endpoints:
            raise AttributeError(f"Unknown GitHub operation '{operationId}'")

        async def operation(params: Optional[Dict[str, Any]] = None) -> ApiResponse:
            return await self._client.call(operationId, params)

        operation.__name__ = name
        operation.__qualname__ = operationId
        return operation

    def __dir__(self) -> List[str]:
        prefix = f"{self._name}."
        return [op[len(prefix) :] for op in self._client.endpoints if op.startswith(prefix)]

    def __repr__(self) -> str:
        return f"OperationNamespace({self._name!r})"


class GithubClient:
    """Async client for GitHub REST API, dood!

    Example:
        >>> async with GithubClient(token="ghp_...") as client:
        ...     response = await client.repos.get({"owner": "python", "repo": "cpython"})
        ...     print(response.data["full_name"])
        ...
        ...     limits = await client.call("misc.getRateLimit")
        ...     print(limits.data["resources"])
    """

    def __init__(
        self,
        token: Optional[str] = None,
        baseUrl: str = API_BASE_URL,
        timeout: int = DEFAULT_TIMEOUT,
        endpoints: Optional[Mapping[str, Tuple[str, str]]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize the GitHub client.

        Args:
            token: Personal access token (can be set later with authenticate())
            baseUrl: Base URL for the API (default: https://api.github.com)
            timeout: Request timeout in seconds (default: 30)
            endpoints: Operation table (default: ENDPOINTS)
            transport: Custom httpx transport (used by tests)
        """
        self.token: Optional[str] = None
        self.baseUrl = baseUrl.rstrip("/")
        self.timeout = timeout
        self.endpoints: Dict[str, Tuple[str, str]] = dict(endpoints if endpoints is not None else ENDPOINTS)
        self._transport = transport
        self._httpClient: Optional[httpx.AsyncClient] = None

        for namespace in sorted({op.split(".", 1)[0] for op in self.endpoints if "." in op}):
            setattr(self, namespace, OperationNamespace(self, namespace))

        if token is not None:
            self.authenticate(token)

        logger.debug(f"GithubClient initialized for {self.baseUrl}")

    async def __aenter__(self) -> "GithubClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    def authenticate(self, token: str) -> None:
        """Set access token used for all following requests.

        Raises:
            ValidationError: If token is empty
        """
        if not token or not token.strip():
            raise ValidationError("Access token cannot be empty")
        self.token = token.strip()

    def _getHeaders(self) -> Dict[str, str]:
        headers = {
            "Accept": CONTENT_TYPE_JSON,
            "X-GitHub-Api-Version": API_VERSION,
        }
        if self.token:
            headers[AUTH_HEADER] = f"{AUTH_TYPE_TOKEN} {self.token}"
        return headers

    def _getHttpClient(self) -> httpx.AsyncClient:
        """Get or create the HTTP client with proper configuration."""
        if self._httpClient is None or self._httpClient.is_closed:
            self._httpClient = httpx.AsyncClient(
                base_url=self.baseUrl,
                timeout=httpx.Timeout(self.timeout),
                headers={"User-Agent": f"ghqueue/{VERSION}"},
                transport=self._transport,
            )
            logger.debug("Created new HTTP client")

        # Token may be changed after client creation
        self._httpClient.headers.update(self._getHeaders())
        return self._httpClient

    async def aclose(self) -> None:
        """Close the HTTP client and cleanup resources."""
        if self._httpClient and not self._httpClient.is_closed:
            await self._httpClient.aclose()
            logger.debug("HTTP client closed")

    def _buildPath(self, operationId: str, pathTemplate: str, params: Dict[str, Any]) -> str:
        """Substitute path placeholders, removing used keys from params."""

        def substitute(match: re.Match[str]) -> str:
            name = match.group(1)
            if name not in params:
                raise ValidationError(f"Missing path parameter '{name}' for operation '{operationId}'")
            return quote(str(params.pop(name)), safe="/")

        return PATH_PARAM_RE.sub(substitute, pathTemplate)

    async def call(self, operationId: str, params: Optional[Dict[str, Any]] = None) -> ApiResponse:
        """Call operation by its id.

        Path placeholders are taken from params, the rest of params is sent
        as query string (GET, DELETE) or JSON body (other methods).

        Args:
            operationId: Operation id, e.g. "repos.get"
            params: Operation parameters

        Returns:
            ApiResponse with parsed data

        Raises:
            GithubError: Unknown operation or API error
        """
        if operationId not in self.endpoints:
            raise GithubError(f"Unknown GitHub operation '{operationId}'")

        method, pathTemplate = self.endpoints[operationId]
        restParams = dict(params or {})
        path = self._buildPath(operationId, pathTemplate, restParams)

        kwargs: Dict[str, Any] = {}
        if restParams:
            if method in (HTTP_GET, HTTP_DELETE):
                kwargs["params"] = restParams
            else:
                kwargs["json"] = restParams

        return await self._makeRequest(method, path, **kwargs)

    async def _makeRequest(self, method: str, path: str, **kwargs: Any) -> ApiResponse:
        """Make single HTTP request and convert errors.

        Args:
            method: HTTP method
            path: API path relative to base URL
            **kwargs: Additional arguments passed to httpx request

        Returns:
            ApiResponse for 2xx responses

        Raises:
            GithubError: Various error types based on API response
            NetworkError: For network-related issues
        """
        client = self._getHttpClient()
        logger.debug(f"Making {method} request to {path}")

        try:
            response = await client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise NetworkError(f"Timeout: {type(e).__name__}#{e}") from e
        except httpx.RequestError as e:
            raise NetworkError(f"Network error: {type(e).__name__}#{e}") from e

        headers = {k.lower(): v for k, v in response.headers.items()}

        if 200 <= response.status_code < 300:
            data: Any = None
            if response.content:
                try:
                    data = response.json()
                except ValueError as e:
                    raise GithubError(f"Invalid JSON response: {e}") from e
            logger.debug(f"Request successful: {method} {path}")
            return ApiResponse(status=response.status_code, data=data, headers=headers)

        try:
            errorData = response.json()
            if not isinstance(errorData, dict):
                errorData = {"message": str(errorData)}
        except ValueError:
            errorData = {"message": response.text or "Unknown error"}

        logger.warning(f"API error: {response.status_code} {method} {path}: {errorData.get('message')}")
        raise parseApiError(response.status_code, errorData, headers)
