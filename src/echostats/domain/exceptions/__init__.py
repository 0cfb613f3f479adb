"""Domain exceptions."""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, we store message as an attribute so handlers can use it without parsing
    # str(exception). Don't raise this directly - always use a specific subclass so callers
    # can catch precisely.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class ValidationError(DomainException):
    """Caller input is missing or malformed.

    Raised for a missing authorization code, missing refresh token or a
    missing bearer header. Never retried.

    HTTP Status: 400 (401 for a missing bearer token)
    """

    def __init__(self, message: str, *, status_code: int = 400) -> None:
        super().__init__(message)
        self.status_code = status_code


class ConfigurationError(DomainException):
    """Server-side configuration is missing or invalid.

    Raised when the Spotify client credentials are not configured. Operator
    actionable, never retried automatically.

    HTTP Status: 500

    Example:
        raise ConfigurationError("SPOTIFY_CLIENT_SECRET is not configured")
    """

    pass


class UpstreamError(DomainException):
    """Spotify returned a non-2xx response, timed out, or sent unreadable data.

    The status and body are kept for logging. They must not be echoed to
    untrusted clients.

    HTTP Status: 500
    """

    def __init__(
        self,
        message: str,
        *,
        http_status: int | None = None,
        body: str | None = None,
        endpoint: str | None = None,
    ) -> None:
        super().__init__(message)
        self.http_status = http_status
        self.body = body
        self.endpoint = endpoint


class RateLimitExceededError(UpstreamError):
    """Spotify answered 429 Too Many Requests.

    Retryable by the caller after retry_after seconds. Inside one request it
    follows the same failure path as any other non-2xx response.
    """

    def __init__(
        self,
        message: str,
        *,
        retry_after: int | None = None,
        body: str | None = None,
        endpoint: str | None = None,
    ) -> None:
        super().__init__(message, http_status=429, body=body, endpoint=endpoint)
        self.retry_after = retry_after


class UpstreamAuthError(DomainException):
    """Spotify rejected a token operation, or a data call stayed 401 after a refresh.

    Hey future me - this is THE "please log in again" signal. The UI only
    distinguishes this from everything else ("retry later"). A 401 on a data
    call is raised as this class too; the fan-out fetcher catches it once,
    refreshes, and only lets the second one escape.
    """

    def __init__(
        self,
        message: str = "Spotify rejected the credentials. Please re-authenticate.",
        *,
        http_status: int | None = None,
        body: str | None = None,
        error_code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.http_status = http_status
        self.body = body
        self.error_code = error_code  # e.g. "invalid_grant"

    @property
    def requires_reauth(self) -> bool:
        """Check if error means the user has to go through the OAuth flow again."""
        return self.error_code == "invalid_grant" or self.http_status in (400, 401, 403)


class AggregationError(DomainException):
    """Listening summary could not be computed.

    The aggregator degrades missing fields to empty values instead of raising,
    so this only wraps unexpected failures at the service boundary.

    HTTP Status: 500
    """

    pass


__all__ = [
    "AggregationError",
    "ConfigurationError",
    "DomainException",
    "RateLimitExceededError",
    "UpstreamAuthError",
    "UpstreamError",
    "ValidationError",
]
