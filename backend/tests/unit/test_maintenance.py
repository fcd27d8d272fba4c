"""
Unit tests for scheduled cache maintenance.
"""

import asyncio
from datetime import datetime

import pytest

from skill_translator.core.exceptions import CacheUnavailableError
from skill_translator.services.cache_store import TranslationIdentity
from skill_translator.workers.maintenance import (
    cleanup_expired_entries,
    seconds_until_hour,
    start_maintenance,
    stop_maintenance,
)


class TestSchedule:
    def test_later_today(self):
        now = datetime(2024, 5, 1, 1, 30)
        assert seconds_until_hour(3, now) == 90 * 60

    def test_already_passed_rolls_to_tomorrow(self):
        now = datetime(2024, 5, 1, 4, 0)
        assert seconds_until_hour(3, now) == 23 * 3600

    def test_exact_hour_waits_a_full_day(self):
        now = datetime(2024, 5, 1, 3, 0)
        assert seconds_until_hour(3, now) == 24 * 3600


class BrokenCache:
    async def purge(self, expired_only: bool = True) -> int:
        raise CacheUnavailableError("disk I/O error")


class TestCleanup:
    @pytest.mark.asyncio
    async def test_cleanup_reports_deleted_count(self, cache_store):
        await cache_store.store(
            TranslationIdentity("a/SKILL.md", "sha256:" + "a" * 64, "zh-CN", "1.0.0"),
            "译文",
            "sha256:" + "b" * 64,
        )

        result = await cleanup_expired_entries(cache_store)

        assert result == {"status": "success", "deleted_count": 0}

    @pytest.mark.asyncio
    async def test_cleanup_failure_is_reported_not_raised(self):
        result = await cleanup_expired_entries(BrokenCache())

        assert result["status"] == "failed"
        assert result["deleted_count"] == 0
        assert "disk I/O error" in result["error"]

    @pytest.mark.asyncio
    async def test_loop_can_be_stopped(self, cache_store):
        task = start_maintenance(cache_store, hour=3)
        await asyncio.sleep(0)

        await stop_maintenance(task)

        assert task.cancelled()

    @pytest.mark.asyncio
    async def test_stopping_nothing_is_a_no_op(self):
        await stop_maintenance(None)
