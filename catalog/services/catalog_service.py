"""
catalog/services/catalog_service.py

Orchestrates every document operation across the two backing stores:

    create   validate → ObjectStore.put → MetadataStore.create
                                          └─ on failure: ObjectStore.delete(new)
    update   MetadataStore.get → AccessGuard → patch → validate
               └─ with payload: put(new) → MetadataStore.update → delete(old)
    delete   MetadataStore.get → AccessGuard → MetadataStore.delete → delete(binary)

No transaction can span the filesystem and the database, so ordering does
the job instead: a new payload is always durable before a record points at
it, and an old payload is only removed once nothing points at it anymore.
A failure in between leaves at worst an unreferenced payload, which
``sweep_orphans`` reclaims.

All four dependencies are constructor-injected so tests can swap them
out; the module-level singleton wires in the production implementations.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Set

from catalog.core.config import settings
from catalog.core.constants import PDF_CONTENT_TYPE
from catalog.core.exceptions import RejectionReason, ValidationFailedError
from catalog.core.logger import get_logger
from catalog.models.domain import (
    BINARY_FIELDS,
    BinaryPayload,
    Document,
    DocumentDraft,
    DocumentPatch,
    OwnerId,
    Page,
    Upload,
)
from catalog.repository.base import MetadataStore
from catalog.repository.sql_store import SqlMetadataStore
from catalog.security.access_guard import AccessGuard, Action
from catalog.storage.base import ObjectStore
from catalog.storage.filesystem_store import FilesystemObjectStore, extension_for
from catalog.validation.upload_validator import UploadPolicy, UploadValidator, document_policy

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CatalogService:
    """
    Entry point for the transport layer.

    Design choices:
    - **Saga ordering** instead of a cross-medium transaction (see module doc).
    - **Sparse patches**: absent or blank fields keep their stored value.
    - **Column-scoped writes**: a metadata-only update never rewrites the
      binary columns, so it cannot resurrect a key that a concurrent
      replacement has already deleted.
    - **Best-effort cleanup**: failed deletions of superseded or rolled-back
      payloads are logged, never escalated.
    """

    def __init__(
        self,
        objects: ObjectStore | None = None,
        records: MetadataStore | None = None,
        validator: UploadValidator | None = None,
        guard: AccessGuard | None = None,
        policy: UploadPolicy | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._objects: ObjectStore = objects or FilesystemObjectStore(
            f"{settings.upload_dir}/{settings.documents_subdir}"
        )
        self._records: MetadataStore = records or SqlMetadataStore()
        self._validator: UploadValidator = validator or UploadValidator()
        self._guard: AccessGuard = guard or AccessGuard()
        self._policy: UploadPolicy = policy or document_policy()
        self._clock: Callable[[], datetime] = clock or _utcnow

    @property
    def records(self) -> MetadataStore:
        return self._records

    # ── Mutations ──────────────────────────────────────────────────────────────

    async def create(self, draft: DocumentDraft, owner: OwnerId, upload: Optional[Upload]) -> Document:
        """
        Validate, store the payload, then persist the record.

        Raises:
            ValidationFailedError : The upload or the metadata was rejected.
            StorageFailureError   : Either store failed; no record was created.
        """
        metadata = {
            "title": draft.title,
            "authors": draft.authors,
            "keywords": draft.keywords,
            "topic": draft.topic,
        }
        self._validator.validate(upload, self._policy, metadata, require_identity=True).raise_for_rejection()

        key = await self._objects.put(upload.content, extension_for(upload.filename))  # type: ignore[union-attr]

        document = Document(
            title=draft.title.strip(),
            authors=draft.authors.strip(),
            publication_year=draft.publication_year,
            keywords=draft.keywords,
            topic=draft.topic,
            binary_key=key,
            original_filename=upload.filename.strip(),  # type: ignore[union-attr]
            size_bytes=len(upload.content),  # type: ignore[union-attr]
            created_at=self._clock(),
            owner_id=owner,
        )
        try:
            created = await self._records.create(document)
        except Exception:
            await self._discard(key, "rollback of failed create")
            raise

        logger.info("Document %d created by '%s' — '%s'.", created.id, owner, created.title)
        return created

    async def update(
        self,
        document_id: int,
        patch: DocumentPatch,
        caller: OwnerId,
        upload: Optional[Upload] = None,
    ) -> Document:
        """
        Apply a sparse patch and, optionally, replace the payload.

        Raises:
            NotFoundError         : No record with ``document_id``.
            PermissionDeniedError : ``caller`` does not own the record.
            ValidationFailedError : The patch or the new payload was rejected.
            StorageFailureError   : A store failed; the record is unchanged.
        """
        current = await self._records.get(document_id)
        action = Action.REPLACE_BINARY if upload is not None else Action.UPDATE
        self._guard.require(current, caller, action)

        changes = patch.changes()
        if upload is None:
            self._validator.validate_metadata(changes).raise_for_rejection()
        else:
            # Payload rules first, then the patched fields.
            self._validator.validate(upload, self._policy, changes).raise_for_rejection()
        updated = current.copy(**changes)

        if upload is None:
            result = await self._records.update(updated, fields=tuple(changes))
            logger.info("Document %d updated by '%s' (%s).", document_id, caller, ", ".join(changes) or "no changes")
            return result

        new_key = await self._objects.put(upload.content, extension_for(upload.filename))
        updated = updated.copy(
            binary_key=new_key,
            original_filename=upload.filename.strip(),  # type: ignore[union-attr]
            size_bytes=len(upload.content),
        )
        try:
            result = await self._records.update(updated, fields=tuple(changes) + BINARY_FIELDS)
        except Exception:
            await self._discard(new_key, "rollback of failed update")
            raise

        # Only now is the previous payload unreferenced.
        await self._discard(current.binary_key, "replaced payload")
        logger.info("Document %d updated by '%s' with a new payload.", document_id, caller)
        return result

    async def delete(self, document_id: int, caller: OwnerId) -> None:
        """
        Remove the record, then its payload.

        The record goes first: if the payload removal then fails, what is left
        is an unreferenced payload, never a record pointing at nothing.

        Raises:
            NotFoundError         : No record with ``document_id``; nothing is touched.
            PermissionDeniedError : ``caller`` does not own the record.
        """
        current = await self._records.get(document_id)
        self._guard.require(current, caller, Action.DELETE)

        await self._records.delete(document_id)
        await self._discard(current.binary_key, "deleted document")
        logger.info("Document %d deleted by '%s' — '%s'.", document_id, caller, current.title)

    # ── Reads ──────────────────────────────────────────────────────────────────

    async def get(self, document_id: int) -> Document:
        return await self._records.get(document_id)

    async def fetch_binary(self, document_id: int) -> BinaryPayload:
        """
        Return the stored bytes plus the original filename for a download.

        Raises:
            NotFoundError: The record, or its payload, is missing.
        """
        document = await self._records.get(document_id)
        content = await self._objects.get(document.binary_key)
        return BinaryPayload(content=content, filename=document.original_filename, media_type=PDF_CONTENT_TYPE)

    async def search(
        self,
        author: Optional[str] = None,
        topic: Optional[str] = None,
        keyword: Optional[str] = None,
        page: int = 0,
        page_size: Optional[int] = None,
    ) -> Page[Document]:
        """
        Filtered listing across every owner, newest first.

        Blank filters are ignored. A page past the end is empty, not an error.
        """
        offset, limit = self._window(page, page_size)
        logger.debug("Searching — author=%r topic=%r keyword=%r page=%d", author, topic, keyword, page)
        return await self._records.search(author, topic, keyword, offset, limit)

    async def list_by_owner(self, owner: OwnerId, page: int = 0, page_size: Optional[int] = None) -> Page[Document]:
        offset, limit = self._window(page, page_size)
        return await self._records.list_by_owner(owner, offset, limit)

    async def search_owned(
        self, owner: OwnerId, query: Optional[str], page: int = 0, page_size: Optional[int] = None
    ) -> Page[Document]:
        """Free-text search within one owner's records; a blank query lists them all."""
        if not query or not query.strip():
            return await self.list_by_owner(owner, page, page_size)
        offset, limit = self._window(page, page_size)
        return await self._records.search_owned(owner, query, offset, limit)

    async def count_by_owner(self, owner: OwnerId) -> int:
        return await self._records.count_by_owner(owner)

    async def count_all(self) -> int:
        return await self._records.count_all()

    async def distinct_topics(self) -> Set[str]:
        return await self._records.distinct_topics()

    # ── Maintenance ────────────────────────────────────────────────────────────

    async def sweep_orphans(self, grace: Optional[timedelta] = None) -> List[str]:
        """
        Delete stored payloads that no record references.

        Payloads younger than ``grace`` are kept: they may belong to a create
        or an update that has not committed its record yet.

        Returns:
            Keys that were removed.
        """
        grace = grace if grace is not None else timedelta(seconds=settings.orphan_grace_seconds)
        cutoff = self._clock() - grace

        stored = await self._objects.list_objects()
        referenced = await self._records.binary_keys()

        removed: List[str] = []
        for obj in stored:
            if obj.key in referenced or obj.modified_at > cutoff:
                continue
            if await self._objects.delete(obj.key):
                removed.append(obj.key)

        logger.info("Orphan sweep — %d of %d stored object(s) removed.", len(removed), len(stored))
        return removed

    # ── Internals ──────────────────────────────────────────────────────────────

    def _window(self, page: int, page_size: Optional[int]) -> tuple[int, int]:
        size = page_size if page_size is not None else settings.default_page_size
        if page < 0:
            raise ValidationFailedError(RejectionReason.INVALID_PAGINATION, "Page index must not be negative.")
        if size < 1 or size > settings.max_page_size:
            raise ValidationFailedError(
                RejectionReason.INVALID_PAGINATION,
                f"Page size must be between 1 and {settings.max_page_size}.",
            )
        return page * size, size

    async def _discard(self, key: str, context: str) -> None:
        """Best-effort payload removal: failures are logged, never raised."""
        try:
            removed = await self._objects.delete(key)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Could not remove payload '%s' (%s): %s", key, context, exc)
            return
        if not removed:
            logger.debug("Payload '%s' already absent (%s).", key, context)


# ── Module-level singleton ─────────────────────────────────────────────────────
# Controllers reach this instance through the get_catalog_service dependency.
# Tests construct CatalogService directly with injected stores.

catalog_service = CatalogService()
