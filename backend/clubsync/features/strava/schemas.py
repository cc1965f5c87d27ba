"""
Strava value objects shared by the OAuth handler and the sync service.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from clubsync.shared.clock import from_timestamp

# Tokens expiring within this window are refreshed before use
TOKEN_REFRESH_BUFFER = timedelta(seconds=300)


@dataclass(frozen=True)
class StravaTokens:
    """Access/refresh token pair with expiry (naive UTC)."""

    access_token: str
    refresh_token: str
    expires_at: datetime

    def is_valid(self, now: datetime, buffer: timedelta = TOKEN_REFRESH_BUFFER) -> bool:
        return self.expires_at > now + buffer

    @classmethod
    def from_response(cls, data: dict) -> "StravaTokens":
        """Build from a Strava /oauth/token response body."""
        return cls(
            access_token=data["access_token"],
            refresh_token=data["refresh_token"],
            expires_at=from_timestamp(int(data["expires_at"])),
        )
