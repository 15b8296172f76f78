"""
Main API router for v1.
"""

from fastapi import APIRouter
from adwiser_feed.api.feeds import admin_router as feed_admin_router

router = APIRouter()

router.include_router(feed_admin_router)
