"""
Background sync runner.

Handles scheduled club sync plus manual triggers. Scheduled and manual
runs share one lock, so they never overlap; a manual trigger during a
scheduled run waits for it to finish.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from clubsync.config import Settings, settings as app_settings
from clubsync.shared.clock import Clock, utcnow
from clubsync.features.cache.service import CacheService, cache_service
from clubsync.features.clubs.repository import ClubRepository
from clubsync.features.strava.rate_limited import RateLimitedClient
from .config import SyncConfig
from .service import ClubSyncService
from .telemetry import SyncRunResult, SyncTelemetry

logger = logging.getLogger(__name__)


class BackgroundSyncRunner:
    """
    Background task runner for club sync.

    Call `start()` to begin background syncing.
    Call `stop()` to gracefully stop.

    Usage:
        runner = BackgroundSyncRunner(AsyncSessionLocal, api)
        await runner.start()
        result = await runner.trigger_sync()
        # ... later ...
        await runner.stop()
    """

    def __init__(
        self,
        db_factory: Callable,
        api: RateLimitedClient,
        cache: Optional[CacheService] = None,
        interval_seconds: Optional[float] = None,
        clock: Clock = utcnow,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or app_settings
        self._db_factory = db_factory
        self.api = api
        self.cache = cache or cache_service
        self.interval_seconds = (
            interval_seconds
            if interval_seconds is not None
            else self.settings.sync_interval_minutes * 60
        )
        self.clock = clock
        self.telemetry = SyncTelemetry(self.cache.sync)

        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()
        self._next_run: Optional[datetime] = None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self, run_immediately: bool = True):
        """Start background sync loop."""
        if self._running:
            return

        self._running = True
        self._next_run = self.clock() if run_immediately else self.clock() + timedelta(seconds=self.interval_seconds)
        self._task = asyncio.create_task(self._run_loop(run_immediately))
        logger.info(f"Background sync started (interval: {self.interval_seconds / 60:.0f} minutes)")

    async def stop(self):
        """Stop background sync loop."""
        self._running = False
        self._next_run = None
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Background sync stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def in_progress(self) -> bool:
        return self._lock.locked()

    async def _run_loop(self, run_immediately: bool):
        """Main sync loop."""
        if not run_immediately:
            await asyncio.sleep(self.interval_seconds)

        while self._running:
            try:
                await self.trigger_sync()
            except Exception as e:
                logger.error(f"Scheduled sync error: {e}")

            purged = self.cache.purge_expired()
            if purged:
                logger.debug(f"Purged {purged} expired cache entries")

            # Wait before next run
            self._next_run = self.clock() + timedelta(seconds=self.interval_seconds)
            await asyncio.sleep(self.interval_seconds)

    # -------------------------------------------------------------------------
    # Runs
    # -------------------------------------------------------------------------

    def _service(self, db) -> ClubSyncService:
        return ClubSyncService(
            db,
            self.api,
            cache=self.cache,
            clock=self.clock,
            settings=self.settings,
            telemetry=self.telemetry,
        )

    async def trigger_sync(self) -> SyncRunResult:
        """Run a full sync now (waits for a running one to finish first)."""
        async with self._lock:
            async with self._db_factory() as db:
                return await self._service(db).sync_all_clubs()

    async def reset_and_resync(self) -> SyncRunResult:
        """Delete all events and hide markers, then run a full sync."""
        async with self._lock:
            async with self._db_factory() as db:
                return await self._service(db).reset_and_resync()

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    async def _token_health(self) -> dict:
        now = self.clock()
        health = {"valid": 0, "expiring": 0, "missing": 0}

        async with self._db_factory() as db:
            clubs = await ClubRepository(db).list_clubs(approved=True)

        for club in clubs:
            credentials = club.credentials
            if credentials is None:
                health["missing"] += 1
            elif credentials.is_valid(now):
                health["valid"] += 1
            else:
                health["expiring"] += 1

        shared = self.cache.sync.get(SyncConfig.SHARED_TOKEN_KEY)
        health["shared_token_configured"] = bool(
            self.settings.strava_refresh_token
            or self.cache.sync.get(SyncConfig.SHARED_REFRESH_TOKEN_KEY)
        )
        health["shared_token_valid"] = bool(shared and shared.is_valid(now))
        return health

    async def get_status(self) -> dict:
        """Scheduler state, token health, telemetry and rate-limit snapshot."""
        telemetry = self.telemetry.snapshot()
        return {
            "running": self._running,
            "in_progress": self.in_progress,
            "interval_minutes": self.interval_seconds / 60,
            "last_run": telemetry["last_attempt"],
            "last_success": telemetry["last_success"],
            "next_run": self._next_run.isoformat() if self._next_run else None,
            "token_health": await self._token_health(),
            "recent_errors": telemetry["recent_errors"],
            "totals": telemetry["totals"],
            "last_summary": telemetry["last_summary"],
            "rate_limit": self.api.snapshot(),
            "queue_size": self.api.queue_size,
        }
