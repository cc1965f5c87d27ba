"""
One-off data maintenance.

repair_event_urls: event links built from the local club id
(https://www.strava.com/clubs/4/group_events/1749508) instead of the Strava
club id (https://www.strava.com/clubs/1046872/group_events/1749508) do not
open on Strava. This rewrites them in place.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from clubsync.features.cache.service import CacheService, cache_service
from clubsync.features.clubs.repository import ClubRepository
from clubsync.features.events.extraction import (
    build_event_url,
    is_valid_event_url,
    repair_event_url,
)
from clubsync.features.events.repository import EventRepository
from clubsync.features.events.schemas import EventFilters

logger = logging.getLogger(__name__)


async def repair_event_urls(db: AsyncSession, cache: CacheService = cache_service) -> int:
    """
    Fix event deep links that do not use the club's Strava id.

    Returns:
        Number of events updated
    """
    clubs = ClubRepository(db)
    events = EventRepository(db)
    fixed = 0

    for club in await clubs.list_clubs():
        for event in await events.list_events(EventFilters(club_ids=[club.id])):
            if is_valid_event_url(event.strava_event_url, club.strava_club_id):
                continue

            repaired = repair_event_url(event.strava_event_url, club.id, club.strava_club_id)
            if not is_valid_event_url(repaired, club.strava_club_id):
                # Unrecognized shape; rebuild from ids
                repaired = build_event_url(club.strava_club_id, event.strava_event_id)

            logger.info(f"Event {event.id}: {event.strava_event_url} -> {repaired}")
            await events.update(event, strava_event_url=repaired)
            fixed += 1

    await db.commit()
    if fixed:
        cache.invalidate_events()
    logger.info(f"Repaired {fixed} event URLs")
    return fixed
