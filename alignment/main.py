"""FastAPI application -- entry point for the alignment backend.

Lifespan applies the logging configuration, registers route modules, serves
the health endpoint, and mounts static files for the SPA front end.

Environment (see alignment.config):
  ALIGNMENT_LOG_LEVEL     -- level of the ``alignment`` logger tree
  ALIGNMENT_CORS_ORIGINS  -- comma-separated CORS allow-list
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from alignment.config import configure_logging, get_cors_origins, get_log_level
from alignment.geometry.engine import DERIVED_NAMES, INPUT_NAMES
from alignment.routes.compute import router as compute_router
from alignment.routes.info import router as info_router
from alignment.routes.websocket import router as websocket_router

logger = logging.getLogger("alignment")

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup tasks:
    1. Apply ALIGNMENT_LOG_LEVEL to the ``alignment`` logger tree
    2. Log the size of the quantity graph being served
    """
    configure_logging()
    logger.info(
        "Alignment engine ready: %d inputs, %d derived quantities (log level %s)",
        len(INPUT_NAMES),
        len(DERIVED_NAMES),
        get_log_level(),
    )
    yield


app = FastAPI(title="Wheel Alignment", version=VERSION, lifespan=lifespan)

# ---------------------------------------------------------------------------
# CORS middleware for development (Vite dev server at localhost:5173)
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# API route registration
# ---------------------------------------------------------------------------
app.include_router(compute_router)
app.include_router(info_router)
app.include_router(websocket_router)


# ---------------------------------------------------------------------------
# Health check (before static mount so it is not shadowed)
# ---------------------------------------------------------------------------


@app.get("/health")
async def health() -> dict:
    """Health check endpoint."""
    return {"status": "ok", "version": VERSION}


# ---------------------------------------------------------------------------
# Static files mount MUST be last -- catches all unmatched routes and
# serves index.html for SPA client-side routing.
# ---------------------------------------------------------------------------
_static_dir = Path("static")
if _static_dir.is_dir():
    app.mount("/", StaticFiles(directory="static", html=True), name="static")
