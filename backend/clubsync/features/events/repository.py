"""
Event repositories.

Data access for synced events and per-user hide markers.
"""

from datetime import timedelta
from typing import Optional

from sqlalchemy import select, delete, or_
from sqlalchemy.ext.asyncio import AsyncSession

from clubsync.shared.repository import BaseRepository
from .models import Event, HiddenEvent
from .schemas import EventFilters


class EventRepository(BaseRepository[Event]):
    """Repository for synced events."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, Event)

    async def get_by_strava_id(self, strava_event_id: str) -> Optional[Event]:
        """Get event by Strava event ID."""
        return await self.get_by(strava_event_id=str(strava_event_id))

    async def list_events(
        self,
        filters: Optional[EventFilters] = None,
        exclude_ids: Optional[set[int]] = None,
    ) -> list[Event]:
        """
        List events matching filters, ordered by start time.

        Dates are day-granular: events starting on end_date are included.
        """
        query = select(Event)

        if filters:
            f = filters.normalized()
            if f.club_ids:
                query = query.where(Event.club_id.in_(f.club_ids))
            if f.pace_categories:
                query = query.where(Event.pace_category.in_(f.pace_categories))
            if f.distance_ranges:
                query = query.where(or_(*(Event.distance_range == r for r in f.distance_ranges)))
            if f.beginner_friendly:
                query = query.where(Event.beginner_friendly.is_(True))
            if f.is_interval_training is not None:
                query = query.where(Event.is_interval_training.is_(f.is_interval_training))
            if f.start_date:
                query = query.where(Event.start_time >= f.start_date)
            if f.end_date:
                query = query.where(Event.start_time < f.end_date + timedelta(days=1))

        if exclude_ids:
            query = query.where(Event.id.not_in(exclude_ids))

        query = query.order_by(Event.start_time.asc(), Event.id.asc())
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_start_times(self, club_id: int) -> list[tuple]:
        """(start_time, participant_count) for every event of a club."""
        result = await self.db.execute(
            select(Event.start_time, Event.participant_count)
            .where(Event.club_id == club_id)
        )
        return list(result.all())


class HiddenEventRepository(BaseRepository[HiddenEvent]):
    """Repository for per-user hidden events."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, HiddenEvent)

    async def hide(self, user_id: int, event_id: int) -> HiddenEvent:
        """Hide an event for a user. Idempotent."""
        existing = await self.get_by(user_id=user_id, event_id=event_id)
        if existing:
            return existing
        return await self.create(user_id=user_id, event_id=event_id)

    async def unhide(self, user_id: int, event_id: int) -> bool:
        """Remove a hide marker. Returns True if one existed."""
        result = await self.db.execute(
            delete(HiddenEvent).where(
                HiddenEvent.user_id == user_id,
                HiddenEvent.event_id == event_id,
            )
        )
        await self.db.flush()
        return bool(result.rowcount)

    async def list_for_user(self, user_id: int) -> list[HiddenEvent]:
        """All hide markers of a user."""
        return await self.get_all(user_id=user_id)

    async def hidden_event_ids(self, user_id: int) -> set[int]:
        result = await self.db.execute(
            select(HiddenEvent.event_id).where(HiddenEvent.user_id == user_id)
        )
        return set(result.scalars().all())
