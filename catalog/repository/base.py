"""
catalog/repository/base.py

Abstract interface for the document metadata store.

Every listing operation returns records ordered newest first, ties broken
by descending identifier, so pages stay stable while records are added.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, Optional, Set

from catalog.models.domain import Document, OwnerId, Page


class MetadataStore(ABC):
    """
    Contract every metadata backend must fulfil.

    ``update`` and ``delete`` address records by identifier and raise
    NotFoundError when the record is absent; they never silently no-op.
    """

    async def create_schema(self) -> None:
        """Prepare backing storage before first use; no-op by default."""

    async def dispose(self) -> None:
        """Release connections on shutdown; no-op by default."""

    @abstractmethod
    async def create(self, document: Document) -> Document:
        """Persist a new record and return it with a freshly assigned ``id``."""

    @abstractmethod
    async def get(self, document_id: int) -> Document:
        """Return the record or raise NotFoundError."""

    @abstractmethod
    async def update(self, document: Document, fields: Optional[Iterable[str]] = None) -> Document:
        """
        Overwrite the mutable fields of the record with ``document.id``.

        Args:
            document : Record carrying the new values.
            fields   : When given, only these columns are written; otherwise
                       every mutable column is replaced.

        Returns:
            The record as stored after the update.

        Raises:
            NotFoundError: If no record has ``document.id``.
        """

    @abstractmethod
    async def delete(self, document_id: int) -> None:
        """Remove the record or raise NotFoundError."""

    @abstractmethod
    async def count_by_owner(self, owner_id: OwnerId) -> int: ...

    @abstractmethod
    async def count_all(self) -> int: ...

    @abstractmethod
    async def list_by_owner(self, owner_id: OwnerId, offset: int, limit: int) -> Page[Document]: ...

    @abstractmethod
    async def distinct_topics(self) -> Set[str]:
        """Every non-blank topic currently in use."""

    @abstractmethod
    async def search(
        self,
        author: Optional[str],
        topic: Optional[str],
        keyword: Optional[str],
        offset: int,
        limit: int,
    ) -> Page[Document]:
        """
        Filtered listing across all owners.

        Blank or None filters impose no constraint. ``author`` and ``keyword``
        are case-insensitive substring matches, taken as given (not trimmed);
        ``topic`` is an exact match.
        """

    @abstractmethod
    async def search_owned(
        self, owner_id: OwnerId, query: str, offset: int, limit: int
    ) -> Page[Document]:
        """Case-insensitive substring match on title, authors or keywords of one owner's records."""

    @abstractmethod
    async def binary_keys(self) -> Set[str]:
        """Every object store key currently referenced by a record."""
