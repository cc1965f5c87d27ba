"""
Cached read path.

Wraps the repositories with the cache service: reads check the cache
first and fall through to the database on a miss, writes invalidate.
Cached values are response schemas, never ORM instances bound to a
session.
"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from clubsync.features.clubs.repository import ClubRepository
from clubsync.features.clubs.schemas import ClubResponse
from clubsync.features.events.repository import EventRepository, HiddenEventRepository
from clubsync.features.events.schemas import EventFilters, EventResponse
from .service import CacheService, cache_service

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Cache miss and the database failed too. Nothing partial is returned."""
    pass


class CachedStorage:
    """
    Read-through cache in front of the event and club repositories.

    Usage:
        storage = CachedStorage(db)
        events = await storage.get_events(EventFilters(club_ids=[7]))
    """

    def __init__(self, db: AsyncSession, cache: Optional[CacheService] = None):
        self.db = db
        self.cache = cache or cache_service
        self.events = EventRepository(db)
        self.hidden = HiddenEventRepository(db)
        self.clubs = ClubRepository(db)

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    async def get_events(self, filters: Optional[EventFilters] = None) -> list[EventResponse]:
        """
        Events matching filters, from cache when possible.

        Raises:
            FetchError: cache miss and the database query failed
        """
        cached = self.cache.get_events(filters)
        if cached is not None:
            return cached

        try:
            rows = await self.events.list_events(filters)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load events: {e}")
            raise FetchError("Could not load events") from e

        events = [EventResponse.model_validate(row) for row in rows]
        self.cache.put_events(events, filters)
        return events

    async def get_visible_events(
        self,
        user_id: int,
        filters: Optional[EventFilters] = None,
    ) -> list[EventResponse]:
        """Events minus the ones this user has hidden."""
        events = await self.get_events(filters)
        try:
            hidden_ids = await self.hidden.hidden_event_ids(user_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load hidden events for user {user_id}: {e}")
            raise FetchError("Could not load hidden events") from e

        if not hidden_ids:
            return events
        return [e for e in events if e.id not in hidden_ids]

    async def hide_event(self, user_id: int, event_id: int) -> None:
        await self.hidden.hide(user_id, event_id)
        await self.db.commit()

    async def unhide_event(self, user_id: int, event_id: int) -> bool:
        removed = await self.hidden.unhide(user_id, event_id)
        await self.db.commit()
        return removed

    # -------------------------------------------------------------------------
    # Clubs
    # -------------------------------------------------------------------------

    async def get_clubs(self) -> list[ClubResponse]:
        """Approved clubs ordered by id."""
        return await self._load_clubs(sorted_by_score=False)

    async def get_clubs_sorted_by_score(self) -> list[ClubResponse]:
        """Approved clubs, most active first."""
        return await self._load_clubs(sorted_by_score=True)

    async def _load_clubs(self, sorted_by_score: bool) -> list[ClubResponse]:
        cached = self.cache.get_clubs(sorted_by_score)
        if cached is not None:
            return cached

        try:
            if sorted_by_score:
                rows = await self.clubs.list_by_score()
            else:
                rows = await self.clubs.list_clubs(approved=True)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load clubs: {e}")
            raise FetchError("Could not load clubs") from e

        clubs = [ClubResponse.model_validate(row) for row in rows]
        self.cache.put_clubs(clubs, sorted_by_score)
        return clubs

    async def create_club(self, **data) -> ClubResponse:
        """Register a club and drop cached club lists."""
        club = await self.clubs.create(**data)
        await self.db.commit()
        self.cache.invalidate_clubs()
        return ClubResponse.model_validate(club)
