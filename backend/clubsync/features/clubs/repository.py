"""
Club repository.

Data access for tracked clubs, their Strava credentials and statistics.
"""

from dataclasses import asdict
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clubsync.shared.repository import BaseRepository
from clubsync.features.strava.schemas import StravaTokens
from .models import Club
from .schemas import ClubStats


def strava_club_url(strava_club_id: str) -> str:
    return f"https://www.strava.com/clubs/{strava_club_id}"


class ClubRepository(BaseRepository[Club]):
    """Repository for clubs."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, Club)

    async def get_by_strava_id(self, strava_club_id: str) -> Optional[Club]:
        """Get club by Strava club ID."""
        return await self.get_by(strava_club_id=str(strava_club_id))

    async def list_clubs(self, approved: Optional[bool] = None) -> list[Club]:
        """List clubs ordered by id, optionally only (un)approved ones."""
        query = select(Club)
        if approved is not None:
            query = query.where(Club.approved.is_(approved))
        result = await self.db.execute(query.order_by(Club.id))
        return list(result.scalars().all())

    async def list_by_score(self) -> list[Club]:
        """Approved clubs, most active first."""
        result = await self.db.execute(
            select(Club)
            .where(Club.approved.is_(True))
            .order_by(Club.club_score.desc(), Club.name)
        )
        return list(result.scalars().all())

    async def create(self, **kwargs) -> Club:
        kwargs["strava_club_id"] = str(kwargs["strava_club_id"])
        kwargs.setdefault("strava_club_url", strava_club_url(kwargs["strava_club_id"]))
        return await super().create(**kwargs)

    async def update_credentials(self, club: Club, tokens: StravaTokens) -> Club:
        """Store a full token tuple after exchange or refresh."""
        return await self.update(
            club,
            strava_access_token=tokens.access_token,
            strava_refresh_token=tokens.refresh_token,
            strava_token_expires_at=tokens.expires_at,
        )

    async def update_stats(self, club: Club, stats: ClubStats) -> Club:
        """Write derived statistics."""
        return await self.update(club, **asdict(stats))
