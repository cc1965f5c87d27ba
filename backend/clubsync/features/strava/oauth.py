"""
Strava OAuth token handling.

Handles:
- Code exchange for tokens
- Token refresh

Both go through the shared RateLimitedClient so token calls count against
the same rate-limit budget as API calls.
"""

import logging
from typing import Optional

from clubsync.config import settings
from .errors import StravaError, StravaOAuthError
from .rate_limited import RateLimitedClient
from .schemas import StravaTokens

logger = logging.getLogger(__name__)


class StravaOAuth:
    """
    Strava OAuth handler.

    Usage:
        oauth = StravaOAuth(api)
        tokens = await oauth.exchange_code(code)
        tokens = await oauth.refresh_token(refresh_token)
    """

    def __init__(
        self,
        api: RateLimitedClient,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        oauth_url: Optional[str] = None,
    ):
        self.api = api
        self.client_id = client_id or settings.strava_client_id
        self.client_secret = client_secret or settings.strava_client_secret
        self.token_url = f"{(oauth_url or settings.strava_oauth_url).rstrip('/')}/token"

    async def exchange_code(self, code: str) -> tuple[StravaTokens, dict]:
        """
        Exchange authorization code for tokens.

        Returns:
            (tokens, athlete) where athlete is Strava's summary athlete dict

        Raises:
            StravaOAuthError: If token exchange fails
        """
        data = await self._token_request({
            "code": code,
            "grant_type": "authorization_code",
        }, action="exchange")
        return StravaTokens.from_response(data), data.get("athlete") or {}

    async def refresh_token(self, refresh_token: str) -> StravaTokens:
        """
        Refresh an expired access token.

        Strava may rotate the refresh token; callers must persist the
        returned pair, not just the access token.

        Raises:
            StravaOAuthError: If token refresh fails
        """
        data = await self._token_request({
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        }, action="refresh")
        return StravaTokens.from_response(data)

    async def _token_request(self, payload: dict, action: str) -> dict:
        form = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            **payload,
        }
        try:
            data = await self.api.post_json(self.token_url, data=form)
        except StravaError as e:
            logger.error(f"Strava token {action} failed: {e}")
            raise StravaOAuthError(
                f"Token {action} failed: {e}", status_code=e.status_code
            ) from e

        if not isinstance(data, dict) or "access_token" not in data:
            raise StravaOAuthError(f"Token {action} returned no access token")
        return data
