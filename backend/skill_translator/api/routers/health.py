"""
Health check endpoints.
"""

import asyncio
from typing import Annotated

from fastapi import APIRouter, Depends, status

from skill_translator.api.deps import get_services
from skill_translator.core.db import check_db_health
from skill_translator.core.logging import get_logger
from skill_translator.schemas.health import HealthResponse
from skill_translator.services.container import ServiceContainer

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
)
async def health_check(
    services: Annotated[ServiceContainer, Depends(get_services)],
) -> HealthResponse:
    """
    Liveness check, no authentication required.

    The service reports "degraded" when the cache database is unreachable,
    since translation still works without it.
    """
    cache_connected = await asyncio.to_thread(check_db_health, services.engine)

    return HealthResponse(
        status="ok" if cache_connected else "degraded",
        version=services.settings.translator_version,
        cache_connected=cache_connected,
        provider_configured=services.settings.provider_configured,
    )
