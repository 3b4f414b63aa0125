"""
EngageHub API - Main application entry point.

Social engagement platform backend: prediction job queue endpoints.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from engagehub.core.config import get_settings
from engagehub.core.database import Database
from engagehub.core.metrics import get_metrics, refresh_queue_depth_async
from engagehub.predictions.service import JobsService
from engagehub.predictions.views import router as predictions_router
from engagehub.admin.views import router as admin_router

settings = get_settings()
API_PREFIX = "/api/v1"

logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown events."""
    # Startup
    await Database.connect()
    yield
    # Shutdown
    await Database.disconnect()


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="""
## EngageHub API

Queue AI virality predictions for submitted content and follow them through
to a result.

- **Queue**: enqueue a prediction for a content item
- **Status**: poll a job, list your jobs
- **Cancel**: cancel a job while it is still pending
- **Admin**: list and cancel any job
    """,
    lifespan=lifespan,
    docs_url=f"{API_PREFIX}/docs",
    redoc_url=f"{API_PREFIX}/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
routers = [
    predictions_router,
    admin_router,
]

for router in routers:
    app.include_router(router, prefix=API_PREFIX)


@app.get("/", tags=["Health"])
async def root():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "database": "connected" if Database.client else "disconnected",
        "version": settings.APP_VERSION,
    }


@app.get("/metrics", tags=["Health"])
async def metrics():
    """Prometheus exposition; queue depth is refreshed on every scrape."""
    sink = get_metrics()
    await refresh_queue_depth_async(sink, JobsService.count_pending)
    return Response(content=generate_latest(sink.registry), media_type=CONTENT_TYPE_LATEST)
