"""
Sync run results and telemetry.

Telemetry lives in the cache's `sync` namespace, not in the database:
it is lost on restart, which is fine for an observability aid.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Optional

from clubsync.features.cache.store import TTLStore
from .config import SyncConfig


@dataclass
class ClubSyncResult:
    """Outcome of syncing one club."""

    club_id: int
    club_name: Optional[str] = None
    status: str = "success"  # success | error | skipped
    added: int = 0
    updated: int = 0
    failed: int = 0
    error: Optional[str] = None
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class SyncRunResult:
    """Outcome of one full sync run."""

    status: str  # completed | skipped
    started_at: datetime
    finished_at: Optional[datetime] = None
    reason: Optional[str] = None
    clubs: list[ClubSyncResult] = field(default_factory=list)
    events_deleted: Optional[int] = None
    hidden_events_deleted: Optional[int] = None

    @property
    def added(self) -> int:
        return sum(c.added for c in self.clubs)

    @property
    def updated(self) -> int:
        return sum(c.updated for c in self.clubs)

    @property
    def failed(self) -> int:
        return sum(c.failed for c in self.clubs)

    @property
    def errors(self) -> int:
        return sum(1 for c in self.clubs if c.status == "error")

    @property
    def succeeded(self) -> int:
        return sum(1 for c in self.clubs if c.status == "success")

    def to_dict(self) -> dict:
        data = {
            "status": self.status,
            "reason": self.reason,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "added": self.added,
            "updated": self.updated,
            "failed": self.failed,
            "errors": self.errors,
            "clubs": [c.to_dict() for c in self.clubs],
        }
        if self.events_deleted is not None:
            data["events_deleted"] = self.events_deleted
            data["hidden_events_deleted"] = self.hidden_events_deleted
        return data


class SyncTelemetry:
    """
    Last attempt / last success / recent errors / running totals.

    Usage:
        telemetry = SyncTelemetry(cache_service.sync)
        telemetry.record_attempt(now)
        ...
        telemetry.record_run(result)
    """

    def __init__(self, store: TTLStore):
        self.store = store

    def _key(self, name: str) -> str:
        return f"{SyncConfig.TELEMETRY_PREFIX}{name}"

    def _get(self, name: str, default=None):
        return self.store.get(self._key(name), default)

    def _set(self, name: str, value) -> None:
        self.store.set(self._key(name), value, ttl=None)

    # -------------------------------------------------------------------------
    # Writers
    # -------------------------------------------------------------------------

    def record_attempt(self, at: datetime) -> None:
        self._set("last_attempt", at)

    def record_success(self, at: datetime) -> None:
        self._set("last_success", at)

    def record_error(
        self,
        club_id: Optional[int],
        club_name: Optional[str],
        message: str,
        at: datetime,
    ) -> None:
        """Prepend an error, keeping the newest RECENT_ERRORS_LIMIT."""
        entry = {
            "at": at.isoformat(),
            "club_id": club_id,
            "club_name": club_name,
            "error": message,
        }
        errors = [entry] + list(self._get("recent_errors", []))
        self._set("recent_errors", errors[:SyncConfig.RECENT_ERRORS_LIMIT])

    def record_run(self, result: SyncRunResult) -> None:
        """Add a finished run to the totals and keep it as the last summary."""
        totals = dict(self.totals)
        totals["runs"] += 1
        totals["added"] += result.added
        totals["updated"] += result.updated
        totals["failed"] += result.failed
        totals["errors"] += result.errors
        self._set("totals", totals)
        self._set("last_summary", result.to_dict())

    # -------------------------------------------------------------------------
    # Readers
    # -------------------------------------------------------------------------

    @property
    def last_attempt(self) -> Optional[datetime]:
        return self._get("last_attempt")

    @property
    def last_success(self) -> Optional[datetime]:
        return self._get("last_success")

    @property
    def recent_errors(self) -> list[dict]:
        return list(self._get("recent_errors", []))

    @property
    def totals(self) -> dict:
        return self._get("totals") or {"runs": 0, "added": 0, "updated": 0, "failed": 0, "errors": 0}

    @property
    def last_summary(self) -> Optional[dict]:
        return self._get("last_summary")

    def snapshot(self) -> dict:
        return {
            "last_attempt": self.last_attempt.isoformat() if self.last_attempt else None,
            "last_success": self.last_success.isoformat() if self.last_success else None,
            "recent_errors": self.recent_errors,
            "totals": self.totals,
            "last_summary": self.last_summary,
        }
