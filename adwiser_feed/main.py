"""
FastAPI application entry point.
"""

import logging

from fastapi import FastAPI
from contextlib import asynccontextmanager

from adwiser_feed.api.v1.router import router as v1_router
from adwiser_feed.api.feeds import router as feed_router
from adwiser_feed.config import get_settings
from adwiser_feed.deps import close_redis, get_redis
from adwiser_feed.schemas.common import HealthResponse

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown."""
    # Startup
    yield
    # Shutdown
    close_redis()


app = FastAPI(
    title="BuyAdwiser XML Feed",
    description="WooCommerce product feed for the BuyAdwiser aggregator",
    version="2.0.0",
    lifespan=lifespan
)

# Include routers
app.include_router(feed_router)
app.include_router(v1_router, prefix="/api/v1")


@app.get("/api/v1/health", response_model=HealthResponse, tags=["health"])
def health_check():
    """Health check endpoint."""
    return HealthResponse(ok=True)


@app.get("/api/v1/health/redis", tags=["health"])
def health_check_redis():
    """Check Redis connection health."""
    redis_client = get_redis()
    if redis_client is None:
        return {"ok": True, "redis": "not configured"}
    try:
        redis_client.ping()
        return {"ok": True, "redis": "connected"}
    except Exception as e:
        return {"ok": False, "redis": "disconnected", "error": str(e)}


@app.get("/", tags=["root"])
def root():
    """Root endpoint."""
    return {
        "message": "BuyAdwiser XML Feed",
        "version": "2.0.0",
        "feed": "/feed.xml"
    }
