"""
RecipeShare Backend — Response Cache Admin Routes
"""

import logging

from fastapi import APIRouter

from recipeshare.cache import response_cache
from recipeshare.schemas.common import CacheClearResponse, CacheStatsResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cache", tags=["Cache"])


@router.get("/stats", response_model=CacheStatsResponse, summary="Response cache counters")
async def cache_stats() -> CacheStatsResponse:
    return CacheStatsResponse(
        entries=len(response_cache),
        max_entries=response_cache.max_entries,
        hits=response_cache.hits,
        misses=response_cache.misses,
    )


@router.delete("", response_model=CacheClearResponse, summary="Drop every cached response")
async def clear_cache() -> CacheClearResponse:
    cleared = response_cache.clear()
    logger.info("Response cache cleared: %d entries dropped", cleared)
    return CacheClearResponse(message="Cache cleared", cleared=cleared)
