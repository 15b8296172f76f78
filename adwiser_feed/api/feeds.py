"""
Feed API endpoints.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import Response

from adwiser_feed.config import feed_config_to_dict, get_settings, parse_feed_options, save_feed_config
from adwiser_feed.core.feed import AccessDenied, FeedService
from adwiser_feed.core.utils import first_forwarded_ip
from adwiser_feed.deps import get_feed_service, remember_feed_options, require_admin_token
from adwiser_feed.schemas.common import ErrorResponse
from adwiser_feed.schemas.feed import CacheClearResponse, FeedSettings

logger = logging.getLogger(__name__)

FEED_MEDIA_TYPE = "application/xml; charset=utf-8"

router = APIRouter(tags=["Feed"])
admin_router = APIRouter(
    prefix="/feed",
    tags=["Feed admin"],
    dependencies=[Depends(require_admin_token)]
)


def get_client_ip(request: Request) -> Optional[str]:
    """Client address, preferring the first X-Forwarded-For entry when trusted."""
    if get_settings().trust_forwarded_for:
        forwarded = first_forwarded_ip(request.headers.get("X-Forwarded-For"))
        if forwarded:
            return forwarded
    return request.client.host if request.client else None


@router.get(
    "/feed.xml",
    response_class=Response,
    responses={403: {"model": ErrorResponse, "description": "Feed disabled or client IP not whitelisted"}}
)
def get_feed(request: Request, service: FeedService = Depends(get_feed_service)):
    """
    Serve the product feed.

    Declared sync so it runs in the threadpool: a client disconnect does not
    interrupt generation, and the finished feed still lands in the cache.
    """
    client_ip = get_client_ip(request)
    try:
        service.check_access(client_ip)
    except AccessDenied as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.reason)

    xml = service.get_cached()
    return Response(content=xml, media_type=FEED_MEDIA_TYPE)


@admin_router.get("/settings", response_model=FeedSettings)
def read_feed_settings(service: FeedService = Depends(get_feed_service)):
    """Current feed options."""
    return FeedSettings(**feed_config_to_dict(service.config))


@admin_router.put("/settings", response_model=FeedSettings)
def update_feed_settings(body: FeedSettings, service: FeedService = Depends(get_feed_service)):
    """Persist new feed options; the cached feed is cleared."""
    config = parse_feed_options(body.model_dump())
    try:
        save_feed_config(config)
    except OSError as e:
        logger.error(f"Failed to save feed options: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not save feed options"
        )

    remember_feed_options()
    service.update_config(config)
    logger.info("Feed options updated")
    return FeedSettings(**feed_config_to_dict(config))


@admin_router.post("/cache/clear", response_model=CacheClearResponse)
def clear_feed_cache(service: FeedService = Depends(get_feed_service)):
    """Manually clear the cached feed."""
    service.invalidate_cache()
    return CacheClearResponse(cleared=True)
