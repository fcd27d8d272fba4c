"""
Unit tests for the persistent translation cache.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
import sqlalchemy as sa
from sqlalchemy.exc import OperationalError

from skill_translator.core.db import create_session_factory, session_scope
from skill_translator.core.exceptions import CacheUnavailableError
from skill_translator.models.translation_cache import TranslatedDocument
from skill_translator.services.cache_store import CacheStore, TranslationIdentity


def make_identity(**overrides) -> TranslationIdentity:
    fields = {
        "document_path": "skills/web-monitor/SKILL.md",
        "content_hash": "sha256:" + "a" * 64,
        "target_language": "zh-CN",
        "translator_version": "1.0.0",
    }
    fields.update(overrides)
    return TranslationIdentity(**fields)


class TestIdentity:
    def test_cache_key_is_stable(self):
        assert make_identity().cache_key == make_identity().cache_key

    @pytest.mark.parametrize(
        "field,value",
        [
            ("document_path", "skills/other/SKILL.md"),
            ("content_hash", "sha256:" + "b" * 64),
            ("target_language", "ja"),
            ("translator_version", "1.0.1"),
        ],
    )
    def test_every_field_changes_the_key(self, field, value):
        assert make_identity(**{field: value}).cache_key != make_identity().cache_key


class TestLookupAndStore:
    @pytest.mark.asyncio
    async def test_miss_then_hit(self, cache_store):
        identity = make_identity()

        assert await cache_store.lookup(identity) is None

        await cache_store.store(identity, "译文", "sha256:" + "c" * 64, {"model": "m"})
        entry = await cache_store.lookup(identity)

        assert entry is not None
        assert entry.translated_document == "译文"
        assert entry.metadata == {"model": "m"}
        assert entry.access_count == 1

    @pytest.mark.asyncio
    async def test_lookup_touches_entry(self, cache_store):
        identity = make_identity()
        await cache_store.store(identity, "译文", "sha256:" + "c" * 64)

        first = await cache_store.lookup(identity)
        second = await cache_store.lookup(identity)

        assert second.access_count == first.access_count + 1
        assert second.last_accessed_at >= first.last_accessed_at

    @pytest.mark.asyncio
    async def test_contains_does_not_touch(self, cache_store):
        identity = make_identity()
        await cache_store.store(identity, "译文", "sha256:" + "c" * 64)

        assert await cache_store.contains(identity)
        assert (await cache_store.stats())["total_hits"] == 0

    @pytest.mark.asyncio
    async def test_touch_reports_absent_entries(self, cache_store):
        assert await cache_store.touch(make_identity()) is False

    @pytest.mark.asyncio
    async def test_store_overwrites_existing_entry(self, cache_store):
        identity = make_identity()
        await cache_store.store(identity, "旧", "sha256:" + "1" * 64)
        await cache_store.store(identity, "新", "sha256:" + "2" * 64)

        entry = await cache_store.lookup(identity)
        stats = await cache_store.stats()

        assert entry.translated_document == "新"
        assert stats["entry_count"] == 1

    @pytest.mark.asyncio
    async def test_concurrent_stores_leave_one_complete_entry(self, cache_store):
        identity = make_identity()
        documents = [f"版本 {i}" * 50 for i in range(10)]

        await asyncio.gather(
            *(cache_store.store(identity, doc, "sha256:" + "d" * 64) for doc in documents)
        )

        entry = await cache_store.lookup(identity)
        assert entry.translated_document in documents

    @pytest.mark.asyncio
    async def test_entries_survive_a_new_engine(self, cache_store, cache_db_path):
        from skill_translator.core.db import create_cache_engine

        identity = make_identity()
        await cache_store.store(identity, "持久", "sha256:" + "e" * 64)

        engine = create_cache_engine(cache_db_path)
        try:
            reopened = CacheStore(create_session_factory(engine))
            entry = await reopened.lookup(identity)
        finally:
            engine.dispose()

        assert entry.translated_document == "持久"


class TestPurge:
    @pytest.mark.asyncio
    async def test_purge_expired_only_removes_stale_entries(self, cache_store, cache_engine):
        fresh, stale = make_identity(), make_identity(document_path="old/SKILL.md")
        await cache_store.store(fresh, "新", "sha256:" + "1" * 64)
        await cache_store.store(stale, "旧", "sha256:" + "2" * 64)

        with session_scope(create_session_factory(cache_engine)) as session:
            session.execute(
                sa.update(TranslatedDocument)
                .where(TranslatedDocument.cache_key == stale.cache_key)
                .values(last_accessed_at=datetime.now(timezone.utc) - timedelta(days=40))
            )

        deleted = await cache_store.purge(expired_only=True)

        assert deleted == 1
        assert await cache_store.contains(fresh)
        assert not await cache_store.contains(stale)

    @pytest.mark.asyncio
    async def test_purge_all(self, cache_store):
        for i in range(3):
            await cache_store.store(make_identity(document_path=f"s{i}/SKILL.md"), "x", "sha256:" + "f" * 64)

        assert await cache_store.purge(expired_only=False) == 3
        assert (await cache_store.stats())["entry_count"] == 0


class TestStats:
    @pytest.mark.asyncio
    async def test_empty_cache(self, cache_store):
        stats = await cache_store.stats()

        assert stats["entry_count"] == 0
        assert stats["total_hits"] == 0
        assert stats["oldest_entry_age_seconds"] is None
        assert stats["newest_entry"] is None
        assert stats["storage_size_bytes"] == 0

    @pytest.mark.asyncio
    async def test_counts_hits_misses_and_size(self, cache_store):
        identity = make_identity()
        await cache_store.lookup(identity)
        await cache_store.store(identity, "译文", "sha256:" + "c" * 64)
        await cache_store.lookup(identity)
        await cache_store.lookup(identity)

        stats = await cache_store.stats()

        assert stats["entry_count"] == 1
        assert stats["total_hits"] == 2
        assert stats["total_misses"] == 1
        assert stats["storage_size_bytes"] == len("译文".encode("utf-8"))
        assert stats["oldest_entry_age_seconds"] >= 0
        assert stats["newest_entry"] is not None


class TestFailures:
    @pytest.mark.asyncio
    async def test_storage_errors_become_cache_unavailable(self):
        def broken_factory():
            raise OperationalError("SELECT 1", {}, Exception("disk I/O error"))

        store = CacheStore(broken_factory)

        with pytest.raises(CacheUnavailableError):
            await store.lookup(make_identity())
        with pytest.raises(CacheUnavailableError):
            await store.store(make_identity(), "x", "sha256:" + "0" * 64)
