"""
GitHub API Exceptions

This module contains custom exception classes for handling GitHub API errors.
Every exception carries numeric `code`: queues and toolkit recognise
not-found (404) and rate-limited (429) conditions by it.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from .constants import (
    ERROR_CODE_FORBIDDEN,
    ERROR_CODE_INVALID_REQUEST,
    ERROR_CODE_INVALID_TOKEN,
    ERROR_CODE_RATE_LIMIT_EXCEEDED,
    ERROR_CODE_RESOURCE_NOT_FOUND,
    ERROR_CODE_SERVICE_UNAVAILABLE,
    HEADER_RATELIMIT_REMAINING,
    HEADER_RATELIMIT_RESET,
    HEADER_RETRY_AFTER,
)

logger = logging.getLogger(__name__)


class GithubError(Exception):
    """Base exception class for all GitHub API errors, dood!

    Attributes:
        message: Human-readable error message
        code: Error code (HTTP-like status, if available)
        response: Raw API response data (if available)
    """

    def __init__(
        self,
        message: str,
        code: Optional[int] = None,
        response: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.response = response
        logger.debug(f"GithubError: {message} (code: {code})")

    def __str__(self) -> str:
        if self.code:
            return f"{self.message} (code: {self.code})"
        return self.message


class AuthenticationError(GithubError):
    """Raised when authentication fails due to invalid or missing token."""

    def __init__(
        self,
        message: str = "Authentication failed. Check your access token.",
        code: Optional[int] = ERROR_CODE_INVALID_TOKEN,
        response: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code, response)


class APIError(GithubError):
    """Raised when the API returns an error response which doesn't fit other categories."""

    def __init__(
        self, message: str, code: Optional[int] = ERROR_CODE_INVALID_REQUEST, response: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(message, code, response)


class RateLimitError(GithubError):
    """Raised when the API rate limit is exceeded.

    GitHub reports primary limit exhaustion as 403 with zero remaining quota
    and secondary limits as 403/429, all of them are normalised to code 429.

    Attributes:
        resetAt: Unix timestamp when quota resets (if reported by the API)
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded. Please try again later.",
        code: Optional[int] = ERROR_CODE_RATE_LIMIT_EXCEEDED,
        response: Optional[Dict[str, Any]] = None,
        resetAt: Optional[float] = None,
    ) -> None:
        super().__init__(message, code, response)
        self.resetAt = resetAt


class ValidationError(GithubError):
    """Raised when request validation fails (422 and other client errors)."""

    def __init__(
        self,
        message: str,
        code: Optional[int] = ERROR_CODE_INVALID_REQUEST,
        response: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code, response)


class NotFoundError(GithubError):
    """Raised when a requested resource is not found (or is not visible to the token)."""

    def __init__(
        self,
        message: str = "Resource not found.",
        code: Optional[int] = ERROR_CODE_RESOURCE_NOT_FOUND,
        response: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code, response)


class ServiceUnavailableError(GithubError):
    """Raised when the API service is temporarily unavailable (5xx)."""

    def __init__(
        self,
        message: str = "Service temporarily unavailable. Please try again later.",
        code: Optional[int] = ERROR_CODE_SERVICE_UNAVAILABLE,
        response: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code, response)


class NetworkError(GithubError):
    """Raised when network-related errors occur (timeouts, DNS, connection resets)."""

    def __init__(
        self,
        message: str = "Network error occurred.",
        code: Optional[int] = None,
        response: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code, response)


class ConfigurationError(GithubError):
    """Raised when the client or toolkit is misconfigured."""

    def __init__(self, message: str, code: Optional[int] = None, response: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, code, response)


def _parseResetAt(headers: Mapping[str, str]) -> Optional[float]:
    reset = headers.get(HEADER_RATELIMIT_RESET)
    if reset is not None:
        try:
            return float(reset)
        except ValueError:
            logger.warning(f"Invalid {HEADER_RATELIMIT_RESET} header: {reset}")
    return None


def _isRateLimited(statusCode: int, headers: Mapping[str, str], message: str) -> bool:
    if statusCode == ERROR_CODE_RATE_LIMIT_EXCEEDED:
        return True
    if statusCode != ERROR_CODE_FORBIDDEN:
        return False
    if headers.get(HEADER_RATELIMIT_REMAINING) == "0" or HEADER_RETRY_AFTER in headers:
        return True
    return "rate limit" in message.lower()


def parseApiError(
    statusCode: int,
    responseData: Dict[str, Any],
    headers: Optional[Mapping[str, str]] = None,
) -> GithubError:
    """Parse API error response and return appropriate exception.

    Args:
        statusCode: HTTP status code
        responseData: Parsed JSON response from API
        headers: Response headers (used to detect rate limiting)

    Returns:
        Appropriate exception instance based on status and headers

    Example:
        >>> error = parseApiError(403, {"message": "API rate limit exceeded"}, {"x-ratelimit-remaining": "0"})
        >>> isinstance(error, RateLimitError)
        True
    """
    headers = headers if headers is not None else {}
    errorMessage = str(responseData.get("message", "Unknown API error"))

    if _isRateLimited(statusCode, headers, errorMessage):
        return RateLimitError(errorMessage, response=responseData, resetAt=_parseResetAt(headers))

    if statusCode == 401:
        return AuthenticationError(errorMessage, statusCode, responseData)
    elif statusCode == 404:
        return NotFoundError(errorMessage, statusCode, responseData)
    elif 400 <= statusCode < 500:
        return ValidationError(errorMessage, statusCode, responseData)
    elif 500 <= statusCode < 600:
        return ServiceUnavailableError(errorMessage, statusCode, responseData)

    # Default to generic API error
    return APIError(errorMessage, statusCode, responseData)
