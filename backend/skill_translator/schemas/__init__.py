"""
Pydantic schemas for API request/response validation.
"""

from skill_translator.schemas.cache import CacheStatsResponse, ClearCacheResponse
from skill_translator.schemas.health import HealthResponse, ServiceInfoResponse
from skill_translator.schemas.translate import (
    BatchFileRequest,
    BatchFileResult,
    BatchTranslateRequest,
    BatchTranslateResponse,
    TranslateOptions,
    TranslateRequest,
    TranslateResponse,
    TranslationMetadata,
)

__all__ = [
    "CacheStatsResponse",
    "ClearCacheResponse",
    "HealthResponse",
    "ServiceInfoResponse",
    "BatchFileRequest",
    "BatchFileResult",
    "BatchTranslateRequest",
    "BatchTranslateResponse",
    "TranslateOptions",
    "TranslateRequest",
    "TranslateResponse",
    "TranslationMetadata",
]
