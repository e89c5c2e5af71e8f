"""Hangover Shield - FastAPI Application Entry Point."""

import asyncio
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from shield.config import get_settings
from shield.database import engine, Base, SessionLocal
from shield.logging_config import setup_logging
from shield.routers import access_router, auth_router, checkins_router, plans_router
from shield.services.checkin_store import CheckInStore
from shield.services.storage import SqlCheckInCache, build_remote_store


settings = get_settings()
logger = logging.getLogger(__name__)


def build_checkin_store() -> CheckInStore:
    return CheckInStore(
        local=SqlCheckInCache(SessionLocal),
        remote=build_remote_store(
            settings.remote_store_url,
            api_key=settings.remote_store_api_key,
            timeout=settings.remote_timeout_seconds,
        ),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    setup_logging()
    Base.metadata.create_all(bind=engine)
    app.state.checkin_store = build_checkin_store()
    logger.info("%s started", settings.app_name)
    yield
    # Give in-flight remote mirror writes a chance; local state is already saved
    store = app.state.checkin_store
    if store.pending_count:
        logger.info("Waiting for %d remote check-in writes", store.pending_count)
    try:
        await asyncio.wait_for(store.drain(), timeout=settings.remote_timeout_seconds)
    except asyncio.TimeoutError:
        logger.warning("Abandoning %d remote check-in writes", store.pending_count)
        store.cancel_pending()


app = FastAPI(
    title="Hangover Shield API",
    description="Recovery plans, daily check-ins and access tiers for the Hangover Shield app",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:8081",
        "http://127.0.0.1:8081",
        settings.frontend_url,
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router, prefix="/api/v1")
app.include_router(checkins_router, prefix="/api/v1")
app.include_router(plans_router, prefix="/api/v1")
app.include_router(access_router, prefix="/api/v1")


@app.get("/")
def root():
    """Root endpoint with API info."""
    return {
        "name": settings.app_name,
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs",
    }


@app.get("/health")
def health_check():
    """Health check endpoint for container orchestration."""
    return {"status": "healthy"}
