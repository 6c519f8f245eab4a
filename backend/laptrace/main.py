"""
Lap Trace - FastAPI Backend

Main application entry point and configuration.
"""

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from laptrace.api.laps import router as laps_router
from laptrace.api.tracks import router as tracks_router
from laptrace.config import DEFAULT_TRACKS_FILE, TRACKS_FILE_ENV
from laptrace.services.track_registry import get_registry, init_registry


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting Lap Trace Backend")

    registry = get_registry()
    if registry.tracks_file is None:
        tracks_file = Path(os.getenv(TRACKS_FILE_ENV, str(DEFAULT_TRACKS_FILE)))
        init_registry(tracks_file)
        logger.info(f"Initialized track registry with file: {tracks_file}")

    yield

    logger.info("Shutting down Lap Trace Backend")


app = FastAPI(
    title="Lap Trace",
    description="""
    Backend API turning kart telemetry into timed laps.

    ## Features
    - Ingest GPS sessions from GPX, AiM CSV, GeoJSON or video extractor output
    - Detect the circuit from the session position
    - Split sessions into laps on finish line crossings
    - Reconstruct laps from RPM-only lap timer exports
    - Manage the track registry

    ## Data Flow
    1. List or add tracks via /tracks
    2. POST a session to /laps/extract
    3. POST RPM bundles to /laps/rpm
    """,
    version="0.1.0",
    lifespan=lifespan,
)


# CORS middleware (allow all origins for development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


app.include_router(tracks_router)
app.include_router(laps_router)


@app.get("/")
async def root():
    """Root endpoint - basic health check."""
    return {
        "name": "Lap Trace",
        "version": "0.1.0",
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    registry = get_registry()

    return {
        "status": "healthy",
        "tracks_file": str(registry.tracks_file) if registry.tracks_file else None,
        "track_count": len(registry.list_tracks()),
    }
