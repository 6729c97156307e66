"""healthday API: FastAPI application entry point.

Run locally:
    uvicorn healthday.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from healthday.config import Settings, get_settings
from healthday.routers import health, records, sync
from healthday.services.database import close_pool, init_pool
from healthday.services.store import InMemoryRecordStore, PostgresRecordStore, RecordStore
from healthday.telemetry.config_loader import get_sync_config
from healthday.telemetry.service import HealthRecordService

logger = logging.getLogger("healthday")


# ---------- Logging ----------

def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-8s %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )


# ---------- Lifespan ----------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup / shutdown hooks."""
    settings = get_settings()
    logger.info(
        "Starting healthday API v%s [%s, store=%s]",
        settings.app_version,
        settings.environment,
        settings.record_store,
    )
    store: RecordStore
    if settings.record_store == "postgres":
        await init_pool(settings)
        store = PostgresRecordStore()
    else:
        store = InMemoryRecordStore()
    app.state.record_service = HealthRecordService(store, get_sync_config())
    yield
    if settings.record_store == "postgres":
        await close_pool()
    logger.info("healthday API shut down")


# ---------- App factory ----------

def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="healthday API",
        description=(
            "Daily biometric telemetry: provider sync, file import and "
            "per-day reconciliation."
        ),
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---------- Health check (outside v1 prefix, always at /health) ----------
    app.include_router(health.router)

    # ---------- API v1 routes ----------
    v1_prefix = "/api/v1"

    app.include_router(records.router, prefix=v1_prefix)
    app.include_router(sync.router, prefix=v1_prefix)

    return app


app = create_app()
