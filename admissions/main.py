"""Admissions Analytics — FastAPI Application Entry Point.

Serves admissions metrics, campus and enrollment figures, and census
lookups to the analytics dashboard.
"""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from admissions.api.campus_routes import router as campus_router
from admissions.api.census_routes import router as census_router
from admissions.api.metrics_routes import router as metrics_router
from admissions.config import settings
from admissions.connectors.edge_functions import EdgeFunctionClient
from admissions.core.logging import get_logger
from admissions.core.lookup_cache import LookupCache
from admissions.database import _mask_url, db_url, engine, is_sqlite, missing_views, test_connection
from admissions.scheduler.jobs import start_scheduler, stop_scheduler

logger = get_logger("main")

VERSION = "1.0.0"
IS_SERVERLESS = bool(
    os.environ.get("VERCEL") or os.environ.get("AWS_LAMBDA_FUNCTION_NAME")
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Wire shared caches and the edge client onto app.state."""
    logger.info(
        f"🚀 Admissions Analytics {VERSION} starting "
        f"({'serverless' if IS_SERVERLESS else 'local'})"
    )
    if not test_connection():
        logger.error("❌ Database unreachable — metrics endpoints will return 502")

    app.state.campus_cache = LookupCache(ttl_seconds=settings.campus_cache_ttl_seconds)
    app.state.lookup_cache = LookupCache(ttl_seconds=settings.lookup_cache_ttl_seconds)
    app.state.edge_client = EdgeFunctionClient()

    # No background scheduler on serverless hosts
    if not IS_SERVERLESS:
        start_scheduler(app.state.campus_cache, app.state.lookup_cache)
    try:
        yield
    finally:
        stop_scheduler()
        await app.state.edge_client.close()
        logger.info("Admissions Analytics shut down")


app = FastAPI(
    title="Admissions Analytics",
    description="Admissions metrics by period and campus, enrollment by grade band, and census lookups.",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(metrics_router)
app.include_router(campus_router)
app.include_router(census_router)


@app.get("/health", tags=["System"])
async def health_check():
    return {"status": "healthy", "service": "admissions-analytics", "version": VERSION}


@app.get("/debug/db", tags=["System"])
def debug_db():
    """Database connectivity and which metrics views are missing."""
    connected = test_connection()
    missing, error = [], None
    if connected:
        try:
            missing = missing_views(engine)
        except SQLAlchemyError as e:
            error = str(e)
    return {
        "connected": connected,
        "backend": "sqlite" if is_sqlite else "postgresql",
        "url": _mask_url(db_url),
        "schema": settings.metrics_schema,
        "missing_views": missing,
        "error": error,
        "environment": "serverless" if IS_SERVERLESS else "local",
    }
