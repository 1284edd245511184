"""
Lead Sync - FastAPI Application
Main entry point with all routes configured.
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from leadsync.database import init_db
from leadsync.schemas.common import HealthResponse

# Import all API routers
from leadsync.api import activity, campaigns, enrichment, webhooks

VERSION = "1.0.0"

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Startup
    await init_db()
    yield
    # Shutdown


app = FastAPI(
    title="Lead Sync API",
    description="Lead enrichment and Lemlist campaign synchronization",
    version=VERSION,
    lifespan=lifespan
)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include all routers
app.include_router(enrichment.router)
app.include_router(campaigns.router)
app.include_router(webhooks.router)   # Lemlist events
app.include_router(activity.router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "message": "Lead Sync API is running",
        "version": VERSION,
        "docs": "/docs"
    }


@app.get("/health", response_model=HealthResponse)
async def health():
    """Detailed health check."""
    return HealthResponse(status="healthy", version=VERSION)
