"""
Club Routes

Endpoints:
- GET /clubs - approved clubs (sort=score for most active first)
- POST /clubs - register a club (unapproved until reviewed)
"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from clubsync.db.session import get_async_db
from clubsync.features.cache import CacheService, CachedStorage, FetchError
from clubsync.features.clubs import ClubCreate, ClubRepository, ClubResponse
from clubsync.api.v1.deps import get_cache

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=list[ClubResponse])
async def list_clubs(
    sort: Optional[Literal["score"]] = None,
    db: AsyncSession = Depends(get_async_db),
    cache: CacheService = Depends(get_cache),
):
    """List approved clubs."""
    storage = CachedStorage(db, cache)
    try:
        if sort == "score":
            return await storage.get_clubs_sorted_by_score()
        return await storage.get_clubs()
    except FetchError:
        raise HTTPException(status_code=503, detail="Failed to fetch clubs")


@router.post("", response_model=ClubResponse, status_code=201)
async def register_club(
    request: ClubCreate,
    db: AsyncSession = Depends(get_async_db),
    cache: CacheService = Depends(get_cache),
):
    """Register a Strava club for sync."""
    if await ClubRepository(db).get_by_strava_id(request.strava_club_id):
        raise HTTPException(status_code=409, detail="Club already registered")

    data = request.model_dump(exclude_none=True)
    club = await CachedStorage(db, cache).create_club(**data)
    logger.info(f"Registered club {club.name} (Strava ID: {club.strava_club_id})")
    return club
