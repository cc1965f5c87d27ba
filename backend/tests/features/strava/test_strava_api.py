"""
Tests for StravaOAuth, StravaClient and StravaTokens.
"""

from datetime import datetime, timedelta

import pytest

from clubsync.features.strava import (
    StravaClient,
    StravaOAuth,
    StravaOAuthError,
    StravaTokens,
    TerminalClientError,
)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def oauth(api, test_settings):
    return StravaOAuth(
        api,
        client_id=test_settings.strava_client_id,
        client_secret=test_settings.strava_client_secret,
        oauth_url=test_settings.strava_oauth_url,
    )


# =============================================================================
# Tests: OAuth
# =============================================================================

class TestStravaOAuth:

    async def test_refresh_returns_rotated_pair(self, oauth, fake_strava):
        tokens = await oauth.refresh_token("old-refresh")

        assert tokens.access_token == "access-1"
        assert tokens.refresh_token == "refresh-1"
        assert tokens.expires_at == datetime(2030, 1, 1)

        body = fake_strava.calls_to("/oauth/token")[0].content
        assert b"grant_type=refresh_token" in body
        assert b"client_id=client-id" in body
        assert b"refresh_token=old-refresh" in body

    async def test_exchange_code_returns_athlete(self, oauth):
        tokens, athlete = await oauth.exchange_code("code-123")

        assert tokens.access_token == "access-1"
        assert athlete == {"id": 42}

    async def test_failure_wrapped(self, oauth, fake_strava):
        fake_strava.token_status = 400

        with pytest.raises(StravaOAuthError) as exc_info:
            await oauth.refresh_token("bad")

        assert exc_info.value.status_code == 400


# =============================================================================
# Tests: API client
# =============================================================================

class TestStravaClient:

    async def test_get_club_events(self, api, fake_strava):
        fake_strava.events["1046872"] = [{"id": 1}, {"id": 2}]

        events = await StravaClient(api).get_club_events("1046872", "token")

        assert events == [{"id": 1}, {"id": 2}]
        assert fake_strava.requests[0].url.path == "/api/v3/clubs/1046872/group_events"

    async def test_unknown_path_is_terminal(self, api):
        with pytest.raises(TerminalClientError):
            await StravaClient(api).get_club("1046872", "token")

    async def test_athlete_clubs(self, api, fake_strava):
        fake_strava.athlete_clubs = [{"id": 9, "name": "Club"}]

        assert await StravaClient(api).get_athlete_clubs("token") == [{"id": 9, "name": "Club"}]


# =============================================================================
# Tests: Tokens
# =============================================================================

class TestStravaTokens:

    def test_refresh_buffer(self):
        now = datetime(2024, 5, 8, 12, 0)
        tokens = StravaTokens("a", "r", now + timedelta(minutes=5))

        assert not tokens.is_valid(now)
        assert tokens.is_valid(now - timedelta(seconds=1))

    def test_from_response(self):
        tokens = StravaTokens.from_response(
            {"access_token": "a", "refresh_token": "r", "expires_at": 0}
        )

        assert tokens.expires_at == datetime(1970, 1, 1)
