"""
Feed settings schemas.
"""

from pydantic import BaseModel, Field
from typing import List, Literal


class FeedSettings(BaseModel):
    """Feed options as stored and returned by the settings endpoints."""
    enabled: bool = True
    ip_whitelist: List[str] = Field(default_factory=list)
    limit_results: bool = False
    results_limit: int = Field(default=1000, ge=1)
    enable_caching: bool = True
    cache_time: int = Field(default=15, ge=1, description="Cache lifetime in minutes")
    variations_format: Literal["separate", "nested"] = "separate"
    price_aggregation: Literal["min", "max"] = "min"


class CacheClearResponse(BaseModel):
    """Response for manual cache clear."""
    cleared: bool = True
