"""
clubsync API

FastAPI application serving synced running club events.
"""

from contextlib import asynccontextmanager
import logging
import sys

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from clubsync import __version__
from clubsync.config import settings
from clubsync.db.session import init_db, close_db, AsyncSessionLocal
from clubsync.api.v1.router import api_router
from clubsync.features.cache import cache_service
from clubsync.features.strava import RateLimitedClient
from clubsync.features.sync import BackgroundSyncRunner


# === Logging Setup ===
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout),
    ]
)
logger = logging.getLogger(__name__)


# === Lifespan ===
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Startup
    logger.info("Starting clubsync API...")
    await init_db()
    logger.info("Database initialized")

    api = RateLimitedClient.from_settings(settings)
    runner = BackgroundSyncRunner(AsyncSessionLocal, api, cache=cache_service)
    app.state.strava_api = api
    app.state.sync_runner = runner

    # Start background club sync
    if settings.sync_enabled and settings.strava_configured:
        await runner.start()
        logger.info("Strava background sync started")
    else:
        logger.info("Background sync skipped (disabled or Strava not configured)")

    yield

    # Shutdown
    await runner.stop()
    await api.aclose()
    await close_db()
    logger.info("Shutting down...")


# === App Creation ===
app = FastAPI(
    title="clubsync API",
    description="Running club events synced from Strava",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# === Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# === Routes ===
app.include_router(api_router, prefix="/api/v1")


# === Health Check ===
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}
