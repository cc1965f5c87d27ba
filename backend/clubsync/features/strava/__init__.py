"""
Strava integration module.

Usage:
    from clubsync.features.strava import RateLimitedClient, StravaClient, StravaOAuth

Components:
- RateLimitedClient: shared request queue (concurrency cap, backoff, rate limits)
- StravaClient: club events / club details / athlete clubs
- StravaOAuth: token exchange and refresh
"""

from .errors import (
    StravaError,
    TransientNetworkError,
    RateLimitedError,
    UpstreamServerError,
    TerminalClientError,
    CredentialExpiredError,
    StravaOAuthError,
)
from .rate_limited import (
    RateLimitedClient,
    RateLimitState,
    RequestDescriptor,
)
from .schemas import StravaTokens, TOKEN_REFRESH_BUFFER
from .oauth import StravaOAuth
from .client import StravaClient

__all__ = [
    # Errors
    "StravaError",
    "TransientNetworkError",
    "RateLimitedError",
    "UpstreamServerError",
    "TerminalClientError",
    "CredentialExpiredError",
    "StravaOAuthError",
    # Request client
    "RateLimitedClient",
    "RateLimitState",
    "RequestDescriptor",
    # Tokens
    "StravaTokens",
    "TOKEN_REFRESH_BUFFER",
    # API
    "StravaOAuth",
    "StravaClient",
]
