"""
Tests for the event URL repair job.
"""

from datetime import datetime, timedelta

from clubsync.features.events import EventFilters, EventRepository, build_event_url
from clubsync.features.sync import repair_event_urls


# =============================================================================
# Test Data
# =============================================================================

START = datetime(2024, 5, 14, 16, 0)


async def add_event(db, club, strava_event_id: str, url: str):
    event = await EventRepository(db).create(
        strava_event_id=strava_event_id,
        club_id=club.id,
        title="Club run",
        start_time=START,
        end_time=START + timedelta(hours=1),
        strava_event_url=url,
    )
    await db.commit()
    return event


# =============================================================================
# Tests
# =============================================================================

class TestRepairEventUrls:

    async def test_rewrites_local_id_links(self, db, cache, make_club):
        club = await make_club("1046872", "Oslo Runners")
        await add_event(db, club, "55", f"https://www.strava.com/clubs/{club.id}/group_events/55")
        await add_event(db, club, "56", build_event_url("1046872", "56"))

        fixed = await repair_event_urls(db, cache=cache)

        assert fixed == 1
        event = await EventRepository(db).get_by_strava_id("55")
        assert event.strava_event_url == build_event_url("1046872", "55")

    async def test_rebuilds_unrecognized_links(self, db, cache, make_club):
        club = await make_club("1046872", "Oslo Runners")
        await add_event(db, club, "57", "https://example.com/old-link")

        assert await repair_event_urls(db, cache=cache) == 1

        event = await EventRepository(db).get_by_strava_id("57")
        assert event.strava_event_url == build_event_url("1046872", "57")

    async def test_invalidates_event_cache_only_when_fixing(self, db, cache, make_club):
        club = await make_club("1046872", "Oslo Runners")
        await add_event(db, club, "58", build_event_url("1046872", "58"))
        cache.put_events(["cached"], EventFilters(club_ids=[club.id]))

        assert await repair_event_urls(db, cache=cache) == 0
        assert cache.get_events(EventFilters(club_ids=[club.id])) == ["cached"]

        await add_event(db, club, "59", f"https://www.strava.com/clubs/{club.id}/group_events/59")
        assert await repair_event_urls(db, cache=cache) == 1
        assert cache.get_events(EventFilters(club_ids=[club.id])) is None
