"""
API Router v1

Combines all route modules.
"""

from fastapi import APIRouter

from clubsync.api.v1.routes import events, clubs, sync

api_router = APIRouter()

api_router.include_router(events.router, prefix="/events", tags=["Events"])
api_router.include_router(clubs.router, prefix="/clubs", tags=["Clubs"])
api_router.include_router(sync.router, prefix="/sync", tags=["Sync"])
