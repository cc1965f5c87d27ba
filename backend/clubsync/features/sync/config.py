"""
Sync configuration constants.

Contains all configuration values for sync behavior that are not
deployment settings (those live in clubsync.config).
"""


class SyncConfig:
    """Configuration for sync behavior."""

    # Recent error entries kept in telemetry (most recent first)
    RECENT_ERRORS_LIMIT = 20

    # Cache keys in the `sync` namespace
    TELEMETRY_PREFIX = "sync:telemetry:"
    SHARED_TOKEN_KEY = "sync:shared_token"
    SHARED_REFRESH_TOKEN_KEY = "sync:shared_refresh_token"

    # Skipped-run reasons
    REASON_NOT_CONFIGURED = "strava_not_configured"
    REASON_NO_CLUBS = "no_clubs"
    REASON_NO_CREDENTIALS = "no_credentials"
    REASON_CLUB_NOT_FOUND = "club_not_found"
