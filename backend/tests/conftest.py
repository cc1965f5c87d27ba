"""
Shared fixtures.

- In-memory SQLite database (aiosqlite) with all tables created
- Fake Strava API served through httpx.MockTransport
- RateLimitedClient wired to the fake, with instant sleeps
"""

from datetime import datetime, timedelta

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from clubsync.config import Settings
from clubsync.features.cache import CacheService
from clubsync.features.clubs import ClubRepository
from clubsync.features.strava import RateLimitedClient
from clubsync.models import Base, register_models
from clubsync.shared.clock import FixedClock


# Wednesday
NOW = datetime(2024, 5, 8, 12, 0, 0)


# =============================================================================
# Fake Strava
# =============================================================================

class FakeStrava:
    """
    Minimal Strava API: /oauth/token, /clubs/{id}/group_events, /athlete/clubs.

    events[club_strava_id] is the list returned for that club.
    status_overrides[club_strava_id] is a list of status codes returned
    (one per call) before falling back to 200.
    """

    def __init__(self):
        self.events: dict[str, list] = {}
        self.athlete_clubs: list[dict] = []
        self.status_overrides: dict[str, list[int]] = {}
        self.token_status = 200
        self.requests: list[httpx.Request] = []
        self.refresh_count = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path.endswith("/oauth/token"):
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"message": "Bad Request"})
            self.refresh_count += 1
            return httpx.Response(200, json={
                "access_token": f"access-{self.refresh_count}",
                "refresh_token": f"refresh-{self.refresh_count}",
                "expires_at": int((datetime(2030, 1, 1) - datetime(1970, 1, 1)).total_seconds()),
                "athlete": {"id": 42},
            })

        if path.endswith("/athlete/clubs"):
            return httpx.Response(200, json=self.athlete_clubs)

        if "/clubs/" in path and path.endswith("/group_events"):
            club_id = path.split("/clubs/")[1].split("/")[0]
            overrides = self.status_overrides.get(club_id)
            if overrides:
                return httpx.Response(overrides.pop(0), json={"message": "error"})
            return httpx.Response(200, json=self.events.get(club_id, []))

        return httpx.Response(404, json={"message": "Record Not Found"})

    def calls_to(self, suffix: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith(suffix)]


async def _no_sleep(delay: float) -> None:
    return None


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def test_settings():
    """Settings with Strava configured and no shared refresh token."""
    return Settings(
        _env_file=None,
        strava_client_id="client-id",
        strava_client_secret="client-secret",
        strava_refresh_token=None,
        club_timezone="Europe/Oslo",
        admin_api_key="admin-key",
    )


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def cache():
    return CacheService(event_ttl=300, club_ttl=600)


@pytest.fixture
def fake_strava():
    return FakeStrava()


@pytest_asyncio.fixture
async def api(fake_strava, test_settings):
    client = RateLimitedClient(
        base_url=test_settings.strava_api_url,
        min_interval=0,
        transport=httpx.MockTransport(fake_strava.handler),
        sleep=_no_sleep,
        jitter=lambda: 0.0,
    )
    yield client
    await client.aclose()


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    register_models()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_club(db):
    """Factory: create an approved club (with valid credentials unless told otherwise)."""

    async def _make_club(strava_club_id: str = "1046872", name: str = "Oslo Runners", **overrides):
        data = dict(
            strava_club_id=strava_club_id,
            name=name,
            pace_categories=["beginner"],
            distance_ranges=["medium"],
            meeting_frequency="weekly",
            approved=True,
            strava_access_token="club-access",
            strava_refresh_token="club-refresh",
            strava_token_expires_at=NOW + timedelta(hours=6),
        )
        data.update(overrides)
        club = await ClubRepository(db).create(**data)
        await db.commit()
        return club

    return _make_club


def strava_event(event_id: int, title: str = "Tuesday run", **fields) -> dict:
    """A Strava group event payload."""
    payload = {
        "id": event_id,
        "title": title,
        "description": "Easy 8 km at 6:00/km",
        "start_date_local": "2024-05-14T18:00:00Z",
        "address": "Frognerparken",
        "athlete_count": 12,
    }
    payload.update(fields)
    return payload
