"""
Track Salvage - FastAPI Backend

Serves decoded GPS/accelerometer sessions from a folder of session archives.
"""

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tracksalvage.api.sessions import folder_router, router as sessions_router
from tracksalvage.config import DecodeOptions
from tracksalvage.services.repository import get_repository, init_repository


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


# Default data folder (can be overridden via API or environment)
DEFAULT_DATA_FOLDER = Path("./data/sessions")
DATA_FOLDER_ENV = "TRACKSALVAGE_DATA_FOLDER"

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting Track Salvage backend")

    repo = get_repository()
    if repo.data_folder is None:
        data_folder = Path(os.getenv(DATA_FOLDER_ENV, str(DEFAULT_DATA_FOLDER)))
        if data_folder.exists():
            init_repository(data_folder, DecodeOptions.from_env())
            logger.info(f"Initialized repository with folder: {data_folder}")
        else:
            logger.info(f"Data folder not found: {data_folder}")
            logger.info("Use POST /folder to set data folder")

    yield

    logger.info("Shutting down Track Salvage backend")


app = FastAPI(
    title="Track Salvage",
    description="""
    Decoder API for recorded GPS + accelerometer session archives.

    ## Features
    - Decode .gps / .acc members into absolute trackpoints and samples
    - Cross-check UTC, local and RFC3339 clocks of every anchor
    - Tag fields of unconfirmed meaning with a confidence level

    ## Data Flow
    1. Set data folder via POST /folder
    2. List sessions via GET /sessions
    3. Get trackpoints via GET /sessions/{id}/trackpoints
    4. Inspect warnings via GET /sessions/{id}/diagnostics
    """,
    version=VERSION,
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


app.include_router(sessions_router)
app.include_router(folder_router)


@app.get("/")
async def root():
    """Root endpoint - basic health check."""
    return {
        "name": "Track Salvage",
        "version": VERSION,
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    repo = get_repository()

    return {
        "status": "healthy",
        "data_folder": str(repo.data_folder) if repo.data_folder else None,
        "session_count": repo.session_count,
    }
