"""LeadHub — FastAPI Application Entry Point.

Meta lead-ads ingestion and campaign hierarchy dashboard API.
"""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from leadhub.database import _mask_url, backend_name, check_connection, db_url, init_db
from leadhub.scheduler.jobs import start_scheduler, stop_scheduler
from leadhub.api.campaign_routes import router as campaign_router
from leadhub.api.dashboard_routes import router as dashboard_router
from leadhub.api.field_mapping_routes import router as field_mapping_router
from leadhub.api.lead_routes import router as lead_router
from leadhub.api.meta_routes import router as meta_router
from leadhub.api.subscription_routes import router as subscription_router
from leadhub.api.webhook_routes import router as webhook_router
from leadhub.core.logging import get_logger

logger = get_logger("main")


IS_SERVERLESS = bool(
    os.environ.get("VERCEL") or os.environ.get("AWS_LAMBDA_FUNCTION_NAME")
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info("🚀 LeadHub starting up...")
    logger.info(f"🌍 Environment: {'SERVERLESS' if IS_SERVERLESS else 'LOCAL'}")
    db_ok = check_connection()
    if db_ok:
        try:
            init_db()
        except Exception as e:
            logger.error(f"❌ Table creation failed: {e}")
    else:
        logger.error("❌ Database NOT connected: endpoints will fail")
    if not IS_SERVERLESS:
        start_scheduler()
    yield
    if not IS_SERVERLESS:
        stop_scheduler()
    logger.info("LeadHub shut down")


app = FastAPI(
    title="LeadHub",
    description="Sync Meta ad accounts, spend and lead-form submissions; serve a filterable campaign hierarchy.",
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
app.include_router(meta_router)
app.include_router(webhook_router)
app.include_router(campaign_router)
app.include_router(lead_router)
app.include_router(field_mapping_router)
app.include_router(dashboard_router)
app.include_router(subscription_router)


@app.get("/health", tags=["System"])
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "leadhub",
        "version": "1.0.0",
    }


@app.get("/debug/db", tags=["System"])
async def debug_db():
    """Debug endpoint: check database connectivity."""
    error = None
    connected = False
    try:
        connected = check_connection()
    except Exception as e:
        error = str(e)

    backend = backend_name(db_url)
    return {
        "connected": connected,
        "backend": backend,
        "url": _mask_url(db_url),
        "environment": "serverless" if IS_SERVERLESS else "local",
        "error": error,
    }
