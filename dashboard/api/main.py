"""
LQS Analytics — API Server
============================

API layer serving lead-source ROI analytics computed from the LQS tables
in Supabase.

Route groups:
  /api/health              - Health check
  /api/lqs/roi             - Agency ROI report (pipeline or activity)
  /api/lqs/producers/*     - Producer drill-down
"""

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dashboard.api.routers.lqs_roi import router as lqs_router
from scripts.lib.errors import LqsError

load_dotenv()

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def _supabase_available() -> bool:
    from scripts.lib.supabase_client import get_client
    try:
        get_client()
        return True
    except LqsError as e:
        logger.warning("Supabase not available: %s", e)
        return False


# ─── Lifespan ─────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app):
    """Application startup and shutdown."""
    logger.info("Starting LQS Analytics...")
    if _supabase_available():
        logger.info("Supabase connected")
    logger.info("LQS Analytics ready")
    yield
    logger.info("Shutting down LQS Analytics...")


# ─── App Setup ────────────────────────────────────────────────

cors_origins = os.getenv(
    "CORS_ORIGINS", "http://localhost:3000,http://localhost:8001"
).split(",")

app = FastAPI(
    title="LQS Analytics",
    version=VERSION,
    description="Lead-quality and ROI analytics for insurance agencies",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(lqs_router)


# ─── Health ───────────────────────────────────────────────────

@app.get("/api/health", tags=["system"])
async def health():
    """Health check with service status."""
    return {
        "status": "healthy",
        "service": "LQS Analytics",
        "version": VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "integrations": {
            "supabase": _supabase_available(),
        },
    }
