"""
Cache Service

Query-result caching for the read path, plus a `sync` namespace holding
sync telemetry and the shared Strava access token.

Namespaces:
1. events - event lists keyed by normalized filters (5 min TTL)
2. clubs  - club lists, plain and sorted by score (10 min TTL)
3. sync   - telemetry and tokens (no default TTL)

Usage:
    cache = CacheService()

    events = cache.get_events(filters)
    if events is None:
        events = load_from_db(filters)
        cache.put_events(events, filters)

    cache.invalidate_club_events(club_id)
"""

import json
import logging
import time
from typing import Any, Callable, Optional

from clubsync.config import settings
from clubsync.features.events.schemas import EventFilters
from .store import TTLStore

logger = logging.getLogger(__name__)

EVENTS_ALL_KEY = "events:all"
EVENTS_PREFIX = "events:"


def event_cache_key(filters: Optional[EventFilters] = None) -> str:
    """
    Canonical cache key for an event query.

    Empty filters map to "events:all". Otherwise the normalized filters are
    dumped as JSON with sorted keys: lists sorted, dates cut to YYYY-MM-DD,
    beginner_friendly only when True.
    """
    if filters is None:
        return EVENTS_ALL_KEY

    f = filters.normalized()
    key: dict[str, Any] = {}
    if f.club_ids:
        key["club_ids"] = f.club_ids
    if f.pace_categories:
        key["pace_categories"] = f.pace_categories
    if f.distance_ranges:
        key["distance_ranges"] = f.distance_ranges
    if f.beginner_friendly:
        key["beginner_friendly"] = True
    if f.is_interval_training is not None:
        key["is_interval_training"] = f.is_interval_training
    if f.start_date:
        key["start_date"] = f.start_date.date().isoformat()
    if f.end_date:
        key["end_date"] = f.end_date.date().isoformat()

    if not key:
        return EVENTS_ALL_KEY
    return EVENTS_PREFIX + json.dumps(key, sort_keys=True, separators=(",", ":"))


class CacheService:
    """Namespaced TTL cache for events, clubs and sync state."""

    def __init__(
        self,
        event_ttl: Optional[float] = None,
        club_ttl: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        maxsize: Optional[int] = None,
    ):
        event_ttl = event_ttl if event_ttl is not None else settings.cache_event_ttl_seconds
        club_ttl = club_ttl if club_ttl is not None else settings.cache_club_ttl_seconds
        maxsize = maxsize if maxsize is not None else settings.cache_max_entries

        self.events = TTLStore(default_ttl=event_ttl, clock=clock, maxsize=maxsize)
        self.clubs = TTLStore(default_ttl=club_ttl, clock=clock, maxsize=maxsize)
        self.sync = TTLStore(default_ttl=None, clock=clock, maxsize=maxsize)

        logger.info(f"Cache service initialized with TTL: events={event_ttl}s, clubs={club_ttl}s")

    # ========== Events ==========

    def get_events(self, filters: Optional[EventFilters] = None) -> Optional[list]:
        """Cached events for the query, or None on miss."""
        key = event_cache_key(filters)
        cached = self.events.get(key)
        if cached is None:
            logger.debug(f"Cache miss for {key}")
            return None
        logger.debug(f"Cache hit for {key} ({len(cached)} events)")
        return cached

    def put_events(self, events: list, filters: Optional[EventFilters] = None) -> None:
        key = event_cache_key(filters)
        self.events.set(key, events)
        logger.debug(f"Cached {len(events)} events with key: {key}")

    def invalidate_events(self) -> None:
        """Drop every cached event query."""
        logger.info("Invalidating all event cache entries")
        self.events.clear()

    def invalidate_club_events(self, club_id: int) -> int:
        """
        Drop cached event queries that may include a club's events.

        That is "events:all", every query without a club_ids filter, every
        query whose club_ids contains the club, and any key we cannot parse.
        """
        to_delete = []
        for key in self.events.keys():
            if key == EVENTS_ALL_KEY:
                to_delete.append(key)
                continue
            try:
                filters = json.loads(key[len(EVENTS_PREFIX):])
                club_ids = filters.get("club_ids")
                if not club_ids or club_id in club_ids:
                    to_delete.append(key)
            except (ValueError, AttributeError):
                to_delete.append(key)

        removed = self.events.delete(*to_delete)
        logger.info(f"Invalidated {removed} event cache entries for club {club_id}")
        return removed

    # ========== Clubs ==========

    @staticmethod
    def _club_key(sorted_by_score: bool) -> str:
        return "clubs:sorted" if sorted_by_score else "clubs:all"

    def get_clubs(self, sorted_by_score: bool = False) -> Optional[list]:
        return self.clubs.get(self._club_key(sorted_by_score))

    def put_clubs(self, clubs: list, sorted_by_score: bool = False) -> None:
        self.clubs.set(self._club_key(sorted_by_score), clubs)

    def invalidate_clubs(self) -> None:
        logger.info("Invalidating all club cache entries")
        self.clubs.clear()

    # ========== Maintenance ==========

    def purge_expired(self) -> int:
        """Periodic expiry check across all namespaces."""
        return sum(store.purge_expired() for store in (self.events, self.clubs, self.sync))

    def clear(self) -> None:
        for store in (self.events, self.clubs, self.sync):
            store.clear()


# Process-wide cache instance
cache_service = CacheService()
