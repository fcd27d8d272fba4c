"""
Pydantic schemas for translation cache management.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class CacheStatsResponse(BaseModel):
    """Cache statistics."""

    entry_count: int = Field(..., description="Number of cached documents")
    total_hits: int = Field(..., description="Cache hits across all entries")
    total_misses: int = Field(..., description="Lookups that missed since process start")
    oldest_entry_age_seconds: float | None = Field(
        default=None, description="Age of the oldest entry in seconds"
    )
    newest_entry: datetime | None = Field(default=None, description="When the newest entry was written")
    storage_size_bytes: int = Field(..., description="Size of all stored translations")


class ClearCacheResponse(BaseModel):
    """Response after clearing cache entries."""

    deleted_count: int = Field(..., description="Number of entries deleted")
    expired_only: bool = Field(..., description="Whether only expired entries were removed")
    message: str = Field(..., description="Success message")
