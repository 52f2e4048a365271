"""
catalog/repository/sql_store.py

SQLAlchemy (async) implementation of the MetadataStore interface.

Works with any async SQLAlchemy URL; the default is a local SQLite file
through aiosqlite. Every operation runs in its own short transaction and
returns detached Document values. All backend-specific details are fully
contained here; the rest of the application never imports sqlalchemy.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Iterable, List, Optional, Set

from sqlalchemy import delete, distinct, event, func, or_, select
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from catalog.core.config import settings
from catalog.core.exceptions import NotFoundError, StorageFailureError
from catalog.core.logger import get_logger
from catalog.models.domain import MUTABLE_FIELDS, Document, OwnerId, Page
from catalog.repository.base import MetadataStore
from catalog.repository.tables import Base, DocumentRow

logger = get_logger(__name__)

# Newest first; identifier breaks ties so pagination is stable.
_NEWEST_FIRST = (DocumentRow.created_at.desc(), DocumentRow.id.desc())


def _contains_ci(column, needle: str):
    # The needle is folded with str.lower, the same function SQLite runs as lower().
    return func.lower(column).contains(needle.lower(), autoescape=True)


def _unicode_lower(value):
    return value.lower() if isinstance(value, str) else value


def _register_unicode_lower(dbapi_connection, _connection_record) -> None:
    """Replace SQLite's ASCII-only lower() with a Unicode-aware one."""
    dbapi_connection.create_function("lower", 1, _unicode_lower, deterministic=True)


class SqlMetadataStore(MetadataStore):
    """
    MetadataStore backed by a relational database.

    The engine and session factory are created once on construction and
    reused for the lifetime of the object. Call ``create_schema()`` before
    first use and ``dispose()`` on shutdown.
    """

    def __init__(self, database_url: str | None = None, echo: bool | None = None) -> None:
        """
        Args:
            database_url : Async SQLAlchemy URL. Defaults to ``settings.database_url``.
            echo         : Log emitted SQL. Defaults to ``settings.database_echo``.
        """
        self._url = database_url or settings.database_url
        engine_kwargs: dict[str, Any] = {
            "echo": settings.database_echo if echo is None else echo,
        }
        if self._url.startswith("sqlite") and ":memory:" in self._url:
            # One shared connection, otherwise every session sees an empty database.
            engine_kwargs["poolclass"] = StaticPool

        logger.info("Initialising SqlMetadataStore — url=%s", make_url(self._url).render_as_string())

        self._engine = create_async_engine(self._url, **engine_kwargs)
        if make_url(self._url).get_backend_name() == "sqlite":
            event.listen(self._engine.sync_engine, "connect", _register_unicode_lower)
        self._sessions: async_sessionmaker[AsyncSession] = async_sessionmaker(
            bind=self._engine, expire_on_commit=False
        )

    # ── Lifecycle ──────────────────────────────────────────────────────────────

    async def create_schema(self) -> None:
        """Create missing tables (and the SQLite file's directory)."""
        url = make_url(self._url)
        if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as exc:
            raise StorageFailureError("schema creation", str(exc)) from exc

    async def dispose(self) -> None:
        await self._engine.dispose()

    # ── MetadataStore interface ────────────────────────────────────────────────

    async def create(self, document: Document) -> Document:
        async with self._transaction("record create") as session:
            row = DocumentRow.from_document(document)
            session.add(row)
            await session.flush()
            created = row.to_document()
        logger.debug("Created record %d for owner '%s'.", created.id, created.owner_id)
        return created

    async def get(self, document_id: int) -> Document:
        async with self._transaction("record read") as session:
            row = await session.get(DocumentRow, document_id)
            if row is None:
                raise NotFoundError("document", document_id)
            return row.to_document()

    async def update(self, document: Document, fields: Optional[Iterable[str]] = None) -> Document:
        names = tuple(fields) if fields is not None else MUTABLE_FIELDS
        unknown = set(names) - set(MUTABLE_FIELDS)
        if unknown:
            raise ValueError(f"Not mutable: {sorted(unknown)}")

        async with self._transaction("record update") as session:
            row = await session.get(DocumentRow, document.id)
            if row is None:
                raise NotFoundError("document", document.id)
            # Only touched attributes end up in the UPDATE statement.
            for name in names:
                setattr(row, name, getattr(document, name))
            await session.flush()
            updated = row.to_document()
        logger.debug("Updated record %d (%s).", updated.id, ", ".join(names) or "no fields")
        return updated

    async def delete(self, document_id: int) -> None:
        async with self._transaction("record delete") as session:
            result = await session.execute(delete(DocumentRow).where(DocumentRow.id == document_id))
            if not result.rowcount:
                raise NotFoundError("document", document_id)
        logger.debug("Deleted record %d.", document_id)

    async def count_by_owner(self, owner_id: OwnerId) -> int:
        stmt = select(func.count()).select_from(DocumentRow).where(DocumentRow.owner_id == owner_id)
        async with self._transaction("record count") as session:
            return int(await session.scalar(stmt) or 0)

    async def count_all(self) -> int:
        async with self._transaction("record count") as session:
            return int(await session.scalar(select(func.count()).select_from(DocumentRow)) or 0)

    async def list_by_owner(self, owner_id: OwnerId, offset: int, limit: int) -> Page[Document]:
        stmt = select(DocumentRow).where(DocumentRow.owner_id == owner_id)
        async with self._transaction("record listing") as session:
            return await self._paginate(session, stmt, offset, limit)

    async def distinct_topics(self) -> Set[str]:
        stmt = select(distinct(DocumentRow.topic)).where(
            DocumentRow.topic.is_not(None),
            func.trim(DocumentRow.topic) != "",
        )
        async with self._transaction("topic listing") as session:
            return set((await session.execute(stmt)).scalars().all())

    async def search(
        self,
        author: Optional[str],
        topic: Optional[str],
        keyword: Optional[str],
        offset: int,
        limit: int,
    ) -> Page[Document]:
        stmt = select(DocumentRow)
        if author and author.strip():
            stmt = stmt.where(_contains_ci(DocumentRow.authors, author))
        if topic and topic.strip():
            stmt = stmt.where(DocumentRow.topic == topic)
        if keyword and keyword.strip():
            stmt = stmt.where(_contains_ci(DocumentRow.keywords, keyword))

        async with self._transaction("record search") as session:
            return await self._paginate(session, stmt, offset, limit)

    async def search_owned(
        self, owner_id: OwnerId, query: str, offset: int, limit: int
    ) -> Page[Document]:
        stmt = select(DocumentRow).where(
            DocumentRow.owner_id == owner_id,
            or_(
                _contains_ci(DocumentRow.title, query),
                _contains_ci(DocumentRow.authors, query),
                _contains_ci(DocumentRow.keywords, query),
            ),
        )
        async with self._transaction("record search") as session:
            return await self._paginate(session, stmt, offset, limit)

    async def binary_keys(self) -> Set[str]:
        async with self._transaction("key listing") as session:
            return set((await session.execute(select(DocumentRow.binary_key))).scalars().all())

    # ── Internals ──────────────────────────────────────────────────────────────

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[AsyncSession]:
        """Session + transaction; commits on success, translates driver errors."""
        try:
            async with self._sessions() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as exc:
            logger.exception("%s failed in metadata store.", operation)
            raise StorageFailureError(operation, str(exc)) from exc

    @staticmethod
    async def _paginate(session: AsyncSession, stmt, offset: int, limit: int) -> Page[Document]:
        total = await session.scalar(select(func.count()).select_from(stmt.subquery()))
        rows = (
            await session.execute(stmt.order_by(*_NEWEST_FIRST).limit(limit).offset(offset))
        ).scalars().all()
        items: List[Document] = [row.to_document() for row in rows]
        return Page(items=items, total=int(total or 0), limit=limit, offset=offset)
