"""
Translated document cache model.

One row per translation identity: (document path, source content hash,
target language, translator version).
"""

import hashlib
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from skill_translator.core.db import Base


class TranslatedDocument(Base):
    """A cached translation of a whole document."""

    __tablename__ = "translated_documents"

    cache_key: Mapped[str] = mapped_column(
        sa.String(71), primary_key=True, comment="sha256 of the translation identity"
    )
    document_path: Mapped[str] = mapped_column(sa.Text, nullable=False)
    content_hash: Mapped[str] = mapped_column(
        sa.String(71), nullable=False, comment="Algorithm-stamped hash of the source bytes"
    )
    target_language: Mapped[str] = mapped_column(sa.String(35), nullable=False)
    translator_version: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    translated_document: Mapped[str] = mapped_column(sa.Text, nullable=False)
    translated_hash: Mapped[str] = mapped_column(sa.String(71), nullable=False)
    metadata_json: Mapped[str] = mapped_column(sa.Text, nullable=False, default="{}")
    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)
    last_accessed_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False
    )
    access_count: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)

    __table_args__ = (
        sa.Index("ix_translated_documents_content_hash", "content_hash"),
        sa.Index("ix_translated_documents_path", "document_path"),
        sa.Index("ix_translated_documents_last_accessed", "last_accessed_at"),
    )

    @staticmethod
    def compute_hash(
        document_path: str,
        content_hash: str,
        target_language: str,
        translator_version: str,
    ) -> str:
        """
        Compute the primary key for a translation identity.

        Fields are joined with a NUL separator so no two distinct identities
        can collide on concatenation.
        """
        key_data = "\x00".join(
            (document_path, content_hash, target_language, translator_version)
        )
        return "sha256:" + hashlib.sha256(key_data.encode("utf-8")).hexdigest()

    def __repr__(self) -> str:
        return (
            f"<TranslatedDocument {self.document_path} -> {self.target_language} "
            f"v{self.translator_version} hits={self.access_count}>"
        )
