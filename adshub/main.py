"""Ads Hub — FastAPI Application Entry Point.

Metrics backend for the multi-provider ads dashboard: record ingest,
derived metrics, comparisons, benchmarks, custom formulas and alerts.
"""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from adshub.database import backend_name, init_db, masked_url, test_connection
from adshub.scheduler.jobs import start_scheduler, stop_scheduler
from adshub.api.alert_routes import router as alert_router
from adshub.api.formula_routes import router as formula_router
from adshub.api.metrics_routes import router as metrics_router
from adshub.api.snapshot_routes import router as snapshot_router
from adshub.core.logging import get_logger

logger = get_logger("main")


IS_SERVERLESS = bool(
    os.environ.get("VERCEL") or os.environ.get("AWS_LAMBDA_FUNCTION_NAME")
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    environment = "serverless" if IS_SERVERLESS else "local"
    logger.info(f"Ads Hub starting ({environment})")
    db_ok = test_connection()
    if db_ok:
        try:
            init_db()
        except Exception as e:
            logger.error(f"Table creation failed: {e}")
    else:
        logger.error("Database not connected, endpoints will fail")
    if not IS_SERVERLESS:
        start_scheduler()
    yield
    if not IS_SERVERLESS:
        stop_scheduler()
    logger.info("Ads Hub shut down")


app = FastAPI(
    title="Ads Hub",
    description=(
        "Unified metrics backend for advertising providers: derived metrics, "
        "period and provider comparisons, benchmarks, custom formulas and alerts."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(metrics_router)
app.include_router(formula_router)
app.include_router(alert_router)
app.include_router(snapshot_router)


@app.get("/health", tags=["System"])
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "adshub",
        "version": "1.0.0",
    }


@app.get("/debug/db", tags=["System"])
async def debug_db():
    """Check database connectivity."""
    return {
        "connected": test_connection(),
        "backend": backend_name(),
        "url": masked_url(),
        "environment": "serverless" if IS_SERVERLESS else "local",
    }
