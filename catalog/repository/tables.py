"""
catalog/repository/tables.py

SQLAlchemy ORM mapping for the documents table.

The owner is a plain indexed column with no relationship to an accounts table,
so loading a row never triggers hidden I/O.
"""

from __future__ import annotations

import datetime as dt
from typing import Optional

from sqlalchemy import BigInteger, CheckConstraint, DateTime, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from catalog.core.constants import (
    AUTHORS_MAX_LENGTH,
    FILENAME_MAX_LENGTH,
    KEYWORDS_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    TOPIC_MAX_LENGTH,
)
from catalog.models.domain import Document


class Base(DeclarativeBase):
    pass


class DocumentRow(Base):
    __tablename__ = "documents"
    __table_args__ = (
        CheckConstraint("length(trim(title)) > 0", name="ck_documents_title_not_blank"),
        CheckConstraint("length(trim(authors)) > 0", name="ck_documents_authors_not_blank"),
        Index("ix_documents_created_id", "created_at", "id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(TITLE_MAX_LENGTH), nullable=False)
    authors: Mapped[str] = mapped_column(String(AUTHORS_MAX_LENGTH), nullable=False)
    publication_year: Mapped[Optional[int]] = mapped_column(Integer, default=None)
    keywords: Mapped[Optional[str]] = mapped_column(String(KEYWORDS_MAX_LENGTH), default=None)
    topic: Mapped[Optional[str]] = mapped_column(String(TOPIC_MAX_LENGTH), default=None, index=True)
    binary_key: Mapped[str] = mapped_column(String(255), nullable=False)
    original_filename: Mapped[str] = mapped_column(String(FILENAME_MAX_LENGTH), nullable=False)
    size_bytes: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    owner_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    def to_document(self) -> Document:
        created_at = self.created_at
        if created_at.tzinfo is None:
            # SQLite drops the offset; values are always written in UTC.
            created_at = created_at.replace(tzinfo=dt.timezone.utc)
        return Document(
            id=self.id,
            title=self.title,
            authors=self.authors,
            publication_year=self.publication_year,
            keywords=self.keywords,
            topic=self.topic,
            binary_key=self.binary_key,
            original_filename=self.original_filename,
            size_bytes=self.size_bytes,
            created_at=created_at,
            owner_id=self.owner_id,
        )

    @classmethod
    def from_document(cls, document: Document) -> "DocumentRow":
        return cls(
            title=document.title,
            authors=document.authors,
            publication_year=document.publication_year,
            keywords=document.keywords,
            topic=document.topic,
            binary_key=document.binary_key,
            original_filename=document.original_filename,
            size_bytes=document.size_bytes,
            created_at=document.created_at,
            owner_id=document.owner_id,
        )
