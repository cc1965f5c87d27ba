"""
Tests for the cached read path (CachedStorage over in-memory SQLite).
"""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from clubsync.features.cache import CachedStorage, FetchError
from clubsync.features.clubs import ClubRepository, ClubStats
from clubsync.features.events import EventFilters, EventRepository, build_event_url


# =============================================================================
# Test Data
# =============================================================================

START = datetime(2024, 5, 14, 16, 0)


async def add_event(db, club, strava_event_id: str, start: datetime = START):
    event = await EventRepository(db).create(
        strava_event_id=strava_event_id,
        club_id=club.id,
        title=f"Event {strava_event_id}",
        start_time=start,
        end_time=start + timedelta(hours=1),
        pace_category="beginner",
        strava_event_url=build_event_url(club.strava_club_id, strava_event_id),
    )
    await db.commit()
    return event


# =============================================================================
# Tests: Events
# =============================================================================

class TestCachedEvents:

    async def test_miss_then_hit(self, db, cache, make_club):
        club = await make_club()
        await add_event(db, club, "e1")
        storage = CachedStorage(db, cache)

        first = await storage.get_events()
        await add_event(db, club, "e2", START + timedelta(days=1))
        second = await storage.get_events()

        assert [e.strava_event_id for e in first] == ["e1"]
        # Served from cache until invalidated
        assert second == first

        cache.invalidate_club_events(club.id)
        third = await storage.get_events()
        assert [e.strava_event_id for e in third] == ["e1", "e2"]

    async def test_db_failure_without_cache_raises_fetch_error(self, db, cache):
        storage = CachedStorage(db, cache)
        storage.events.list_events = AsyncMock(
            side_effect=OperationalError("SELECT", {}, Exception("database is locked"))
        )

        with pytest.raises(FetchError):
            await storage.get_events()

    async def test_cached_value_survives_db_failure(self, db, cache, make_club):
        club = await make_club()
        await add_event(db, club, "e1")
        storage = CachedStorage(db, cache)
        await storage.get_events()

        storage.events.list_events = AsyncMock(
            side_effect=OperationalError("SELECT", {}, Exception("database is locked"))
        )

        events = await storage.get_events()
        assert [e.strava_event_id for e in events] == ["e1"]

    async def test_visible_events_exclude_hidden(self, db, cache, make_club):
        club = await make_club()
        e1 = await add_event(db, club, "e1")
        await add_event(db, club, "e2", START + timedelta(days=1))
        storage = CachedStorage(db, cache)

        await storage.hide_event(user_id=5, event_id=e1.id)

        visible = await storage.get_visible_events(5, EventFilters(club_ids=[club.id]))
        others = await storage.get_visible_events(6, EventFilters(club_ids=[club.id]))

        assert [e.strava_event_id for e in visible] == ["e2"]
        assert [e.strava_event_id for e in others] == ["e1", "e2"]

    async def test_unhide(self, db, cache, make_club):
        club = await make_club()
        e1 = await add_event(db, club, "e1")
        storage = CachedStorage(db, cache)
        await storage.hide_event(5, e1.id)

        assert await storage.unhide_event(5, e1.id) is True
        assert [e.id for e in await storage.get_visible_events(5)] == [e1.id]


# =============================================================================
# Tests: Clubs
# =============================================================================

class TestCachedClubs:

    async def test_only_approved_clubs(self, db, cache, make_club):
        await make_club("100", "Approved")
        await make_club("200", "Pending", approved=False)

        clubs = await CachedStorage(db, cache).get_clubs()

        assert [c.name for c in clubs] == ["Approved"]

    async def test_sorted_by_score(self, db, cache, make_club):
        quiet = await make_club("100", "Quiet")
        busy = await make_club("200", "Busy")
        repo = ClubRepository(db)
        await repo.update_stats(quiet, ClubStats(club_score=40))
        await repo.update_stats(busy, ClubStats(club_score=250))
        await db.commit()

        clubs = await CachedStorage(db, cache).get_clubs_sorted_by_score()

        assert [c.name for c in clubs] == ["Busy", "Quiet"]
        assert cache.get_clubs(sorted_by_score=True) == clubs

    async def test_create_club_invalidates(self, db, cache, make_club):
        await make_club("100", "First")
        storage = CachedStorage(db, cache)
        await storage.get_clubs()

        created = await storage.create_club(
            strava_club_id="300", name="Second", meeting_frequency="weekly", approved=True
        )

        assert created.strava_club_url == "https://www.strava.com/clubs/300"
        assert [c.name for c in await storage.get_clubs()] == ["First", "Second"]

    async def test_responses_hide_credentials(self, db, cache, make_club):
        await make_club()

        club = (await CachedStorage(db, cache).get_clubs())[0]

        assert "strava_access_token" not in club.model_dump()
