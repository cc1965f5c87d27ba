"""
Club sync module.

Usage:
    from clubsync.features.sync import BackgroundSyncRunner, ClubSyncService

Components:
- ClubSyncService: per-club token check, fetch, reconcile, stats
- BackgroundSyncRunner: schedule, manual trigger, status
- SyncTelemetry: last attempt / success, recent errors, totals
- repair_event_urls: fix deep links built from local club ids
"""

from .config import SyncConfig
from .telemetry import ClubSyncResult, SyncRunResult, SyncTelemetry
from .service import ClubSyncService
from .background import BackgroundSyncRunner
from .maintenance import repair_event_urls

__all__ = [
    "SyncConfig",
    "ClubSyncResult",
    "SyncRunResult",
    "SyncTelemetry",
    "ClubSyncService",
    "BackgroundSyncRunner",
    "repair_event_urls",
]
