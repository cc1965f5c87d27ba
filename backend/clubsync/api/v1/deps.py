"""
Shared route dependencies.
"""

from fastapi import Header, HTTPException, Request

from clubsync.config import settings
from clubsync.features.cache.service import CacheService, cache_service
from clubsync.features.sync.background import BackgroundSyncRunner


def get_cache() -> CacheService:
    """Process-wide cache (overridden in tests)."""
    return cache_service


def get_sync_runner(request: Request) -> BackgroundSyncRunner:
    """Sync runner created by the app lifespan."""
    runner = getattr(request.app.state, "sync_runner", None)
    if runner is None:
        raise HTTPException(status_code=503, detail="Sync service not available")
    return runner


async def verify_admin_key(x_api_key: str = Header(..., alias="X-API-Key")) -> str:
    """Verify admin API key."""
    if not settings.admin_api_key:
        raise HTTPException(status_code=503, detail="Admin API not configured")
    if x_api_key != settings.admin_api_key:
        raise HTTPException(status_code=401, detail="Invalid API key")
    return x_api_key
