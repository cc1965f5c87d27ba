"""
Strava error taxonomy.

Every failure coming out of the rate-limited client is one of these.
Retryable errors are re-queued by the client; terminal ones reach the
caller on the first occurrence.

    StravaError
    ├── TransientNetworkError   (no response)
    ├── RateLimitedError        (HTTP 429)
    ├── UpstreamServerError     (HTTP 5xx)
    └── TerminalClientError     (other 4xx)
        └── CredentialExpiredError (HTTP 401)

    StravaOAuthError            (token exchange / refresh failed)
"""

from typing import Optional


class StravaError(Exception):
    """Base Strava error."""

    retryable = False

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TransientNetworkError(StravaError):
    """Request never got a response (DNS, connect, read timeout...)."""

    retryable = True


class RateLimitedError(StravaError):
    """Strava answered 429."""

    retryable = True


class UpstreamServerError(StravaError):
    """Strava answered 5xx."""

    retryable = True


class TerminalClientError(StravaError):
    """4xx other than 429. Bad request or bad credentials, not retried."""
    pass


class CredentialExpiredError(TerminalClientError):
    """Access token rejected (401). The caller should refresh and retry once."""
    pass


class StravaOAuthError(StravaError):
    """OAuth-related error."""
    pass
