"""
Club event sync orchestration.

Main entry point for pulling Strava group events into the local store.

Per club, in order:
1. Token check - the club's own credentials, refreshed when they expire
   within 5 minutes; clubs without credentials use the shared token
2. Fetch - group events through the rate-limited client; a 401 forces
   one token refresh and one refetch
3. Reconcile - extract fields, then create or fully overwrite by Strava id
4. Stats - events count, last event, participants, activity score
5. Cache - drop cached queries that may contain the club's events

Clubs are synced one after another. A failing club is rolled back and
recorded in telemetry; the run moves on to the next club.
"""

import logging
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy.ext.asyncio import AsyncSession

from clubsync.config import Settings, settings as app_settings
from clubsync.shared.clock import Clock, utcnow
from clubsync.features.cache.service import CacheService, cache_service
from clubsync.features.clubs.models import Club
from clubsync.features.clubs.repository import ClubRepository, strava_club_url
from clubsync.features.clubs.schemas import ClubStats
from clubsync.features.clubs.scoring import coerce_finite, score_club
from clubsync.features.events.extraction import DateRecoveryError, extract_event_fields
from clubsync.features.events.repository import EventRepository, HiddenEventRepository
from clubsync.features.strava.client import StravaClient
from clubsync.features.strava.errors import CredentialExpiredError
from clubsync.features.strava.oauth import StravaOAuth
from clubsync.features.strava.rate_limited import RateLimitedClient
from clubsync.features.strava.schemas import StravaTokens
from .config import SyncConfig
from .telemetry import ClubSyncResult, SyncRunResult, SyncTelemetry

logger = logging.getLogger(__name__)


class ClubSyncService:
    """
    Main sync orchestrator.

    Usage:
        async with AsyncSessionLocal() as db:
            service = ClubSyncService(db, api)
            result = await service.sync_all_clubs()
    """

    def __init__(
        self,
        db: AsyncSession,
        api: RateLimitedClient,
        cache: Optional[CacheService] = None,
        clock: Clock = utcnow,
        settings: Optional[Settings] = None,
        telemetry: Optional[SyncTelemetry] = None,
    ):
        self.db = db
        self.settings = settings or app_settings
        self.strava = StravaClient(api)
        self.oauth = StravaOAuth(
            api,
            client_id=self.settings.strava_client_id,
            client_secret=self.settings.strava_client_secret,
            oauth_url=self.settings.strava_oauth_url,
        )
        self.clubs = ClubRepository(db)
        self.events = EventRepository(db)
        self.hidden = HiddenEventRepository(db)
        self.cache = cache or cache_service
        self.telemetry = telemetry or SyncTelemetry(self.cache.sync)
        self.clock = clock
        self.tz = ZoneInfo(self.settings.club_timezone)

    # =========================================================================
    # Full runs
    # =========================================================================

    async def sync_all_clubs(self) -> SyncRunResult:
        """
        Sync every approved club, one after another.

        Returns a skipped result (with a reason) when Strava is not
        configured, there are no approved clubs or no credentials at all.
        """
        run = SyncRunResult(status="completed", started_at=self.clock())
        self.telemetry.record_attempt(run.started_at)

        if not self.settings.strava_configured:
            logger.error("Strava API credentials not configured")
            return self._finish_skipped(run, SyncConfig.REASON_NOT_CONFIGURED)

        clubs = await self.clubs.list_clubs(approved=True)
        if not clubs:
            logger.info("No approved clubs to sync")
            return self._finish_skipped(run, SyncConfig.REASON_NO_CLUBS)

        if not any(c.credentials for c in clubs) and not self._shared_refresh_token():
            logger.error("No Strava credentials available for sync")
            return self._finish_skipped(run, SyncConfig.REASON_NO_CREDENTIALS)

        # Plain values: ORM instances are expired by a rollback
        targets = [(c.id, c.name) for c in clubs]
        logger.info(f"Syncing events for {len(targets)} clubs...")

        for club_id, club_name in targets:
            result = await self.sync_club(club_id, club_name)
            run.clubs.append(result)

        run.finished_at = self.clock()
        if run.succeeded > 0 or run.errors == 0:
            self.telemetry.record_success(run.finished_at)
        self.telemetry.record_run(run)

        logger.info(
            f"Sync completed: {run.added} new events, {run.updated} updated, "
            f"{run.failed} skipped, {run.errors} clubs with errors"
        )
        return run

    async def reset_and_resync(self) -> SyncRunResult:
        """
        Delete all hide markers and events, then run a full sync.

        Irreversible: deleted events only come back if Strava still lists them.
        """
        hidden_deleted = await self.hidden.delete_all()
        events_deleted = await self.events.delete_all()
        await self.db.commit()
        self.cache.invalidate_events()
        self.cache.invalidate_clubs()
        logger.warning(
            f"Reset: deleted {events_deleted} events and {hidden_deleted} hidden markers"
        )

        run = await self.sync_all_clubs()
        run.events_deleted = events_deleted
        run.hidden_events_deleted = hidden_deleted
        return run

    def _finish_skipped(self, run: SyncRunResult, reason: str) -> SyncRunResult:
        run.status = "skipped"
        run.reason = reason
        run.finished_at = self.clock()
        self.telemetry.record_run(run)
        return run

    # =========================================================================
    # Single club
    # =========================================================================

    async def sync_club(self, club_id: int, club_name: Optional[str] = None) -> ClubSyncResult:
        """
        Sync one club. Never raises: failures come back as an error result.
        """
        try:
            club = await self.clubs.get_by_id(club_id)
            if club is None:
                return ClubSyncResult(
                    club_id, club_name, status="skipped", reason=SyncConfig.REASON_CLUB_NOT_FOUND
                )
            result = ClubSyncResult(club.id, club.name)

            access_token = await self._access_token_for(club)
            if not access_token:
                result.status = "skipped"
                result.reason = SyncConfig.REASON_NO_CREDENTIALS
                logger.warning(f"No credentials for club {club.name} (ID: {club.id}), skipping")
                return result

            logger.info(f"Fetching events for club ID {club.id} (Strava ID: {club.strava_club_id})...")
            try:
                raw_events = await self.strava.get_club_events(club.strava_club_id, access_token)
            except CredentialExpiredError:
                logger.warning(f"Token rejected for club {club.id}, refreshing and retrying once")
                access_token = await self._access_token_for(club, force_refresh=True)
                if not access_token:
                    raise
                raw_events = await self.strava.get_club_events(club.strava_club_id, access_token)

            await self._reconcile(club, raw_events, result)
            await self._update_stats(club)
            await self.db.commit()

            self.cache.invalidate_club_events(club.id)
            self.cache.invalidate_clubs()

            logger.info(
                f"Synced club {club.name} (ID: {club.id}): "
                f"{result.added} new events, {result.updated} updated, {result.failed} skipped"
            )
            return result

        except Exception as e:
            await self.db.rollback()
            message = f"{type(e).__name__}: {e}"
            logger.error(f"Error syncing club {club_name} (ID: {club_id}): {message}")
            self.telemetry.record_error(club_id, club_name, message, self.clock())
            return ClubSyncResult(club_id, club_name, status="error", error=message)

    async def _reconcile(self, club: Club, raw_events: list[dict], result: ClubSyncResult) -> None:
        """Create or fully overwrite each remote event by its Strava id."""
        now = self.clock()
        for raw in raw_events:
            try:
                fields = extract_event_fields(raw, club.strava_club_id, tz=self.tz, now=now)
            except DateRecoveryError as e:
                logger.warning(f"Skipping event for club {club.id}: {e}")
                result.failed += 1
                continue
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed event payload for club {club.id}: {e!r}")
                result.failed += 1
                continue

            data = fields.as_model_kwargs(club.id)
            existing = await self.events.get_by_strava_id(fields.strava_event_id)
            if existing is None:
                await self.events.create(**data)
                result.added += 1
            else:
                await self.events.update(existing, **data)
                result.updated += 1

    async def _update_stats(self, club: Club) -> ClubStats:
        """Recompute derived statistics and the activity score."""
        rows = await self.events.list_start_times(club.id)
        start_times = [start for start, _ in rows if start is not None]
        counts = [count for _, count in rows if count is not None]

        avg = coerce_finite(sum(counts) / len(counts)) if counts else 0.0
        stats = ClubStats(
            events_count=len(rows),
            avg_participants=round(avg, 1),
            participants_count=sum(counts),
            last_event_date=max(start_times) if start_times else None,
        )
        stats.club_score = score_club(
            avg_participants=stats.avg_participants,
            last_event_date=stats.last_event_date,
            event_start_times=start_times,
            now=self.clock(),
        )
        await self.clubs.update_stats(club, stats)
        return stats

    # =========================================================================
    # Tokens
    # =========================================================================

    async def _access_token_for(self, club: Club, force_refresh: bool = False) -> Optional[str]:
        """
        Valid access token for a club.

        Own credentials first (refreshed and persisted when about to expire),
        otherwise the shared token. Refresh failures raise StravaOAuthError.
        """
        credentials = club.credentials
        if credentials is None:
            return await self._shared_access_token(force_refresh)

        if not force_refresh and credentials.is_valid(self.clock()):
            return credentials.access_token

        logger.info(f"Refreshing Strava token for club {club.id}")
        tokens = await self.oauth.refresh_token(credentials.refresh_token)
        await self.clubs.update_credentials(club, tokens)
        # Strava rotates refresh tokens; persist before anything can roll back
        await self.db.commit()
        return tokens.access_token

    def _shared_refresh_token(self) -> Optional[str]:
        return self.cache.sync.get(SyncConfig.SHARED_REFRESH_TOKEN_KEY) or self.settings.strava_refresh_token

    async def _shared_access_token(self, force_refresh: bool = False) -> Optional[str]:
        if not force_refresh:
            cached: Optional[StravaTokens] = self.cache.sync.get(SyncConfig.SHARED_TOKEN_KEY)
            if cached and cached.is_valid(self.clock()):
                return cached.access_token

        refresh_token = self._shared_refresh_token()
        if not refresh_token:
            return None

        tokens = await self.oauth.refresh_token(refresh_token)
        self.cache.sync.set(SyncConfig.SHARED_TOKEN_KEY, tokens, ttl=None)
        self.cache.sync.set(SyncConfig.SHARED_REFRESH_TOKEN_KEY, tokens.refresh_token, ttl=None)
        logger.info(f"Refreshed shared Strava token, expires at {tokens.expires_at.isoformat()}")
        return tokens.access_token

    # =========================================================================
    # Club import
    # =========================================================================

    async def import_clubs_for_credential(self, tokens: StravaTokens) -> list[Club]:
        """
        Register the clubs an athlete belongs to.

        New clubs are created approved with the athlete's credentials;
        existing clubs without credentials get them too.
        """
        remote_clubs = await self.strava.get_athlete_clubs(tokens.access_token)
        created = []

        for remote in remote_clubs:
            strava_id = str(remote.get("id") or "").strip()
            if not strava_id:
                continue

            club = await self.clubs.get_by_strava_id(strava_id)
            if club is None:
                club = await self.clubs.create(
                    strava_club_id=strava_id,
                    name=remote.get("name") or f"Strava club {strava_id}",
                    strava_club_url=strava_club_url(remote.get("url") or strava_id),
                    pace_categories=[],
                    distance_ranges=[],
                    meeting_frequency="irregular",
                    approved=True,
                )
                created.append(club)
                logger.info(f"Imported club {club.name} (Strava ID: {strava_id})")
            if club.credentials is None:
                await self.clubs.update_credentials(club, tokens)

        await self.db.commit()
        if created:
            self.cache.invalidate_clubs()
        return created

    async def connect_with_code(self, code: str) -> list[Club]:
        """Exchange an OAuth code, then import the athlete's clubs."""
        tokens, athlete = await self.oauth.exchange_code(code)
        logger.info(f"Connected Strava athlete {athlete.get('id')}")
        return await self.import_clubs_for_credential(tokens)
