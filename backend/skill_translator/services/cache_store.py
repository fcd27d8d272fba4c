"""
Cache Store

Persistent mapping from a translation identity to a previously translated
document. Backed by SQLite through synchronous SQLAlchemy; every public method
is a coroutine that runs its transaction in a worker thread so store I/O never
blocks the event loop.
"""

import asyncio
import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

import sqlalchemy as sa
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from skill_translator.core.db import session_scope
from skill_translator.core.exceptions import CacheUnavailableError
from skill_translator.core.logging import get_logger
from skill_translator.models.translation_cache import TranslatedDocument

logger = get_logger(__name__)


@dataclass(frozen=True)
class TranslationIdentity:
    """The four fields that uniquely determine a cached translation."""

    document_path: str
    content_hash: str
    target_language: str
    translator_version: str

    @property
    def cache_key(self) -> str:
        return TranslatedDocument.compute_hash(
            self.document_path,
            self.content_hash,
            self.target_language,
            self.translator_version,
        )


@dataclass
class CacheEntry:
    """A detached snapshot of a cached translation."""

    identity: TranslationIdentity
    translated_document: str
    translated_hash: str
    created_at: datetime
    last_accessed_at: datetime
    access_count: int
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_row(cls, row: TranslatedDocument) -> "CacheEntry":
        return cls(
            identity=TranslationIdentity(
                document_path=row.document_path,
                content_hash=row.content_hash,
                target_language=row.target_language,
                translator_version=row.translator_version,
            ),
            translated_document=row.translated_document,
            translated_hash=row.translated_hash,
            created_at=_as_utc(row.created_at),
            last_accessed_at=_as_utc(row.last_accessed_at),
            access_count=row.access_count,
            metadata=json.loads(row.metadata_json or "{}"),
        )


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


class CacheStore:
    """
    Service for managing the translated-document cache.

    Provides methods to:
    - Look up a translation (and record the hit)
    - Store or overwrite a translation
    - Purge expired or all entries
    - Report cache statistics

    Every storage failure surfaces as CacheUnavailableError; callers decide
    whether to fail open.
    """

    def __init__(self, session_factory: sessionmaker[Session], max_age_days: int = 30):
        self._session_factory = session_factory
        self.max_age_days = max_age_days
        self._misses = 0

    async def lookup(self, identity: TranslationIdentity) -> CacheEntry | None:
        """
        Get the cached translation for an identity.

        On a hit the access counter and last-access timestamp are updated in
        the same transaction as the read.

        Returns:
            CacheEntry if found, None otherwise
        """
        entry = await self._run(self._lookup_sync, identity)
        if entry is None:
            self._misses += 1
            logger.info(
                f"Cache MISS for {identity.document_path} -> {identity.target_language} "
                f"(version={identity.translator_version})"
            )
        else:
            logger.info(
                f"Cache HIT for {identity.document_path} -> {identity.target_language} "
                f"(version={identity.translator_version}, hits={entry.access_count})"
            )
        return entry

    async def contains(self, identity: TranslationIdentity) -> bool:
        """Check for an entry without touching its access statistics."""
        return await self._run(self._contains_sync, identity)

    async def touch(self, identity: TranslationIdentity) -> bool:
        """Record an access without reading the document. Returns False if absent."""
        return await self._run(self._touch_sync, identity)

    async def store(
        self,
        identity: TranslationIdentity,
        translated_document: str,
        translated_hash: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """
        Save a translation, overwriting any existing entry for the identity.

        The write is a single upsert statement, so concurrent writers for the
        same identity resolve last-writer-wins and readers never see a
        partial row.
        """
        await self._run(
            self._store_sync, identity, translated_document, translated_hash, metadata or {}
        )
        logger.info(
            f"Saved translation to cache: {identity.document_path} -> "
            f"{identity.target_language} (chars={len(translated_document)})"
        )

    async def purge(self, expired_only: bool = True) -> int:
        """
        Remove cache entries.

        Args:
            expired_only: Only remove entries not accessed within max_age_days

        Returns:
            Number of entries deleted
        """
        count = await self._run(self._purge_sync, expired_only)
        if expired_only:
            logger.info(
                f"Cleared {count} cache entries not accessed in {self.max_age_days} days"
            )
        else:
            logger.warning(f"Cleared ALL {count} cache entries")
        return count

    async def stats(self) -> dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dictionary with cache statistics:
                - entry_count: Number of cached documents
                - total_hits: Sum of all access counts
                - total_misses: Lookups that missed since process start
                - oldest_entry_age_seconds: Age of the oldest entry, None if empty
                - newest_entry: Creation time of the newest entry, None if empty
                - storage_size_bytes: Approximate size of stored documents
        """
        data = await self._run(self._stats_sync)
        data["total_misses"] = self._misses
        return data

    # -------------------------------------------------------------------------
    # Synchronous implementations (run in a worker thread)
    # -------------------------------------------------------------------------

    async def _run(self, func, *args):
        try:
            return await asyncio.to_thread(func, *args)
        except SQLAlchemyError as e:
            raise CacheUnavailableError(f"Cache storage error: {e}") from e
        except OSError as e:
            raise CacheUnavailableError(f"Cache storage I/O error: {e}") from e

    def _lookup_sync(self, identity: TranslationIdentity) -> CacheEntry | None:
        key = identity.cache_key
        with session_scope(self._session_factory) as session:
            self._touch_in(session, key)
            row = session.get(TranslatedDocument, key)
            return CacheEntry.from_row(row) if row is not None else None

    def _contains_sync(self, identity: TranslationIdentity) -> bool:
        with session_scope(self._session_factory) as session:
            stmt = sa.select(sa.literal(1)).where(
                TranslatedDocument.cache_key == identity.cache_key
            )
            return session.execute(stmt).first() is not None

    def _touch_sync(self, identity: TranslationIdentity) -> bool:
        with session_scope(self._session_factory) as session:
            return self._touch_in(session, identity.cache_key) > 0

    @staticmethod
    def _touch_in(session: Session, key: str) -> int:
        stmt = (
            sa.update(TranslatedDocument)
            .where(TranslatedDocument.cache_key == key)
            .values(
                access_count=TranslatedDocument.access_count + 1,
                last_accessed_at=datetime.now(timezone.utc),
            )
        )
        return session.execute(stmt).rowcount

    def _store_sync(
        self,
        identity: TranslationIdentity,
        translated_document: str,
        translated_hash: str,
        metadata: dict[str, Any],
    ) -> None:
        now = datetime.now(timezone.utc)
        values = {
            "cache_key": identity.cache_key,
            "document_path": identity.document_path,
            "content_hash": identity.content_hash,
            "target_language": identity.target_language,
            "translator_version": identity.translator_version,
            "translated_document": translated_document,
            "translated_hash": translated_hash,
            "metadata_json": json.dumps(metadata, ensure_ascii=False, default=str),
            "created_at": now,
            "last_accessed_at": now,
            "access_count": 0,
        }
        stmt = sqlite_insert(TranslatedDocument).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[TranslatedDocument.cache_key],
            set_={
                "translated_document": stmt.excluded.translated_document,
                "translated_hash": stmt.excluded.translated_hash,
                "metadata_json": stmt.excluded.metadata_json,
                "created_at": stmt.excluded.created_at,
                "last_accessed_at": stmt.excluded.last_accessed_at,
            },
        )
        with session_scope(self._session_factory) as session:
            session.execute(stmt)

    def _purge_sync(self, expired_only: bool) -> int:
        stmt = sa.delete(TranslatedDocument)
        if expired_only:
            cutoff = datetime.now(timezone.utc) - timedelta(days=self.max_age_days)
            stmt = stmt.where(TranslatedDocument.last_accessed_at < cutoff)
        with session_scope(self._session_factory) as session:
            return session.execute(stmt).rowcount

    def _stats_sync(self) -> dict[str, Any]:
        stmt = sa.select(
            sa.func.count(TranslatedDocument.cache_key),
            sa.func.coalesce(sa.func.sum(TranslatedDocument.access_count), 0),
            sa.func.min(TranslatedDocument.created_at),
            sa.func.max(TranslatedDocument.created_at),
            sa.func.coalesce(
                sa.func.sum(
                    sa.func.length(sa.cast(TranslatedDocument.translated_document, sa.LargeBinary))
                ),
                0,
            ),
        )
        with session_scope(self._session_factory) as session:
            entry_count, total_hits, oldest, newest, size = session.execute(stmt).one()

        oldest_age = None
        if oldest is not None:
            oldest_age = (datetime.now(timezone.utc) - _as_utc(oldest)).total_seconds()

        return {
            "entry_count": entry_count,
            "total_hits": int(total_hits),
            "oldest_entry_age_seconds": oldest_age,
            "newest_entry": _as_utc(newest) if newest is not None else None,
            "storage_size_bytes": int(size),
        }
