"""
Event Routes

Endpoints:
- GET /events - synced events, filtered, served from cache
- POST /events/{event_id}/hide - hide an event for a user
- DELETE /events/{event_id}/hide - show it again
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from clubsync.db.session import get_async_db
from clubsync.features.cache import CacheService, CachedStorage, FetchError
from clubsync.features.events import EventFilters, EventResponse, EventRepository, HideEventRequest
from clubsync.features.events.schemas import PaceCategory, DistanceRange
from clubsync.api.v1.deps import get_cache

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=list[EventResponse])
async def list_events(
    club_ids: Optional[list[int]] = Query(default=None),
    pace_categories: Optional[list[PaceCategory]] = Query(default=None),
    distance_ranges: Optional[list[DistanceRange]] = Query(default=None),
    beginner_friendly: Optional[bool] = None,
    is_interval_training: Optional[bool] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    user_id: Optional[int] = Query(default=None, description="Exclude events this user has hidden"),
    db: AsyncSession = Depends(get_async_db),
    cache: CacheService = Depends(get_cache),
):
    """List events ordered by start time."""
    filters = EventFilters(
        club_ids=club_ids,
        pace_categories=pace_categories,
        distance_ranges=distance_ranges,
        beginner_friendly=beginner_friendly,
        is_interval_training=is_interval_training,
        start_date=start_date,
        end_date=end_date,
    )
    storage = CachedStorage(db, cache)

    try:
        if user_id is not None:
            return await storage.get_visible_events(user_id, filters)
        return await storage.get_events(filters)
    except FetchError:
        raise HTTPException(status_code=503, detail="Failed to fetch events")


@router.post("/{event_id}/hide", status_code=204)
async def hide_event(
    event_id: int,
    request: HideEventRequest,
    db: AsyncSession = Depends(get_async_db),
    cache: CacheService = Depends(get_cache),
):
    """Hide an event from a user's calendar."""
    if await EventRepository(db).get_by_id(event_id) is None:
        raise HTTPException(status_code=404, detail="Event not found")
    await CachedStorage(db, cache).hide_event(request.user_id, event_id)


@router.delete("/{event_id}/hide", status_code=204)
async def unhide_event(
    event_id: int,
    user_id: int = Query(..., ge=1),
    db: AsyncSession = Depends(get_async_db),
    cache: CacheService = Depends(get_cache),
):
    """Show a previously hidden event again."""
    if not await CachedStorage(db, cache).unhide_event(user_id, event_id):
        raise HTTPException(status_code=404, detail="Event is not hidden")
