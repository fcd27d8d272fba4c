"""
Translation cache management endpoints.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from skill_translator.api.deps import get_services, require_bearer
from skill_translator.core.logging import get_logger
from skill_translator.schemas.cache import CacheStatsResponse, ClearCacheResponse
from skill_translator.services.container import ServiceContainer

logger = get_logger(__name__)

router = APIRouter(prefix="/api/cache", tags=["Cache"], dependencies=[Depends(require_bearer)])


@router.get(
    "/stats",
    response_model=CacheStatsResponse,
    summary="Get cache statistics",
)
async def get_cache_stats(
    services: Annotated[ServiceContainer, Depends(get_services)],
) -> CacheStatsResponse:
    """
    Get translation cache statistics.

    Returns:
        Entry count, hits, misses, oldest entry age and storage size
    """
    stats = await services.cache.stats()
    logger.info(f"Retrieved cache stats: {stats}")
    return CacheStatsResponse(**stats)


@router.delete(
    "",
    response_model=ClearCacheResponse,
    summary="Clear cache entries",
)
async def clear_cache(
    services: Annotated[ServiceContainer, Depends(get_services)],
    expired_only: bool = Query(
        default=True, description="Only remove entries past the configured maximum age"
    ),
) -> ClearCacheResponse:
    """
    Clear expired cache entries, or all of them.

    Returns:
        Number of entries deleted
    """
    deleted_count = await services.cache.purge(expired_only=expired_only)

    if expired_only:
        message = (
            f"Cleared {deleted_count} entries not accessed in "
            f"{services.cache.max_age_days} days"
        )
    else:
        message = f"Cleared all {deleted_count} cache entries"

    return ClearCacheResponse(
        deleted_count=deleted_count,
        expired_only=expired_only,
        message=message,
    )
