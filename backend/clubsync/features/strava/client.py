"""
Strava API client.

Thin typed wrappers around the club endpoints the sync pipeline needs.
All calls go through the shared RateLimitedClient.

Endpoints:
- GET /clubs/{id}/group_events  - upcoming group events of a club
- GET /clubs/{id}               - club details
- GET /athlete/clubs            - clubs the token's athlete belongs to
"""

import logging

from .rate_limited import RateLimitedClient

logger = logging.getLogger(__name__)


class StravaClient:
    """
    Async client for the Strava club API.

    Usage:
        client = StravaClient(api)
        events = await client.get_club_events("1046872", access_token)
    """

    def __init__(self, api: RateLimitedClient):
        self.api = api

    async def get_club_events(self, club_strava_id: str, access_token: str) -> list[dict]:
        """
        Get group events for a club.

        Raises:
            CredentialExpiredError: token rejected (401)
            StravaError: any other failure after retries
        """
        data = await self.api.get_json(
            f"/clubs/{club_strava_id}/group_events",
            token=access_token,
        )
        if not isinstance(data, list):
            logger.warning(
                f"Unexpected group_events payload for club {club_strava_id}: {type(data).__name__}"
            )
            return []
        return data

    async def get_club(self, club_strava_id: str, access_token: str) -> dict:
        """Get club details."""
        return await self.api.get_json(f"/clubs/{club_strava_id}", token=access_token)

    async def get_athlete_clubs(self, access_token: str) -> list[dict]:
        """Get clubs of the authenticated athlete."""
        data = await self.api.get_json("/athlete/clubs", token=access_token)
        return data if isinstance(data, list) else []
