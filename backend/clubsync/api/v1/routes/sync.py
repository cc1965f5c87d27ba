"""
Sync Routes

Endpoints:
- GET /sync/status - scheduler state, token health, recent errors
- POST /sync/trigger - run a full sync now
- POST /sync/reset - delete all events and resync (X-API-Key)
"""

import logging

from fastapi import APIRouter, Depends

from clubsync.features.sync import BackgroundSyncRunner
from clubsync.api.v1.deps import get_sync_runner, verify_admin_key

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/status")
async def sync_status(runner: BackgroundSyncRunner = Depends(get_sync_runner)):
    """Current sync status."""
    return await runner.get_status()


@router.post("/trigger")
async def trigger_sync(runner: BackgroundSyncRunner = Depends(get_sync_runner)):
    """Run a full sync and return the per-club summary."""
    result = await runner.trigger_sync()
    return result.to_dict()


@router.post("/reset", dependencies=[Depends(verify_admin_key)])
async def reset_and_resync(runner: BackgroundSyncRunner = Depends(get_sync_runner)):
    """Delete all events and hide markers, then resync everything."""
    logger.warning("Destructive reset requested via API")
    result = await runner.reset_and_resync()
    return result.to_dict()
