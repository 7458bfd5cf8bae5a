"""
GitHub API Client Library

Thin async client for the GitHub REST API addressing operations by dotted id.

Example:
    >>> from ghqueue.github import GithubClient
    >>>
    >>> client = GithubClient(token="ghp_...")
    >>> response = await client.repos.get({"owner": "python", "repo": "cpython"})
    >>> await client.aclose()
"""

from .client import ApiResponse, GithubClient, OperationNamespace
from .constants import ENDPOINTS, OPERATION_GET_RATE_LIMIT
from .exceptions import (
    APIError,
    AuthenticationError,
    ConfigurationError,
    GithubError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    ServiceUnavailableError,
    ValidationError,
    parseApiError,
)

__all__ = [
    "ApiResponse",
    "GithubClient",
    "OperationNamespace",
    "ENDPOINTS",
    "OPERATION_GET_RATE_LIMIT",
    "APIError",
    "AuthenticationError",
    "ConfigurationError",
    "GithubError",
    "NetworkError",
    "NotFoundError",
    "RateLimitError",
    "ServiceUnavailableError",
    "ValidationError",
    "parseApiError",
]
