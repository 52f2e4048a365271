"""
tests/services/test_catalog_consistency.py

End-to-end behaviour of CatalogService over the real stores:
a SQLite metadata store and a filesystem object store under tmp_path.

The interleaving tests wrap both stores with probes that fail the test
the moment a record would point at a payload that does not exist.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from itertools import count

import pytest
import pytest_asyncio

from catalog.core.exceptions import NotFoundError, PermissionDeniedError, ValidationFailedError
from catalog.models.domain import DocumentDraft, DocumentPatch, Upload
from catalog.repository.sql_store import SqlMetadataStore
from catalog.services.catalog_service import CatalogService
from catalog.storage.filesystem_store import FilesystemObjectStore

START = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _ticking_clock():
    """Each call is one minute later than the previous one."""
    ticks = count()
    return lambda: START + timedelta(minutes=next(ticks))


def _pdf(content: bytes = b"%PDF-1.4 body", filename: str = "paper.pdf") -> Upload:
    return Upload(content=content, content_type="application/pdf", filename=filename)


@pytest_asyncio.fixture
async def service(metadata_store, object_store) -> CatalogService:
    return CatalogService(objects=object_store, records=metadata_store, clock=_ticking_clock())


# ── Round trips ────────────────────────────────────────────────────────────────

class TestLifecycle:

    @pytest.mark.asyncio
    async def test_created_binary_resolves_to_uploaded_bytes(self, service, draft) -> None:
        payload = b"%PDF-1.7\n" + bytes(range(256)) * 16

        created = await service.create(draft, "alice", _pdf(payload, "Thesis.pdf"))
        fetched = await service.fetch_binary(created.id)

        assert fetched.content == payload
        assert fetched.filename == "Thesis.pdf"
        assert created.size_bytes == len(payload)

    @pytest.mark.asyncio
    async def test_delete_makes_record_and_binary_unresolvable(self, service, object_store, draft) -> None:
        created = await service.create(draft, "alice", _pdf())

        await service.delete(created.id, "alice")

        with pytest.raises(NotFoundError):
            await service.get(created.id)
        with pytest.raises(NotFoundError):
            await service.fetch_binary(created.id)
        assert await object_store.exists(created.binary_key) is False

    @pytest.mark.asyncio
    async def test_delete_unknown_id_changes_nothing(self, service, object_store, draft) -> None:
        await service.create(draft, "alice", _pdf())
        before = await object_store.list_objects()

        with pytest.raises(NotFoundError):
            await service.delete(12345, "alice")

        assert await service.count_all() == 1
        assert [o.key for o in await object_store.list_objects()] == [o.key for o in before]

    @pytest.mark.asyncio
    async def test_non_owner_cannot_change_record(self, service, object_store, draft) -> None:
        created = await service.create(draft, "alice", _pdf())

        with pytest.raises(PermissionDeniedError):
            await service.update(created.id, DocumentPatch(title="Hijacked"), "mallory", _pdf(b"%PDF evil"))
        with pytest.raises(PermissionDeniedError):
            await service.delete(created.id, "mallory")

        assert await service.get(created.id) == created
        assert [o.key for o in await object_store.list_objects()] == [created.binary_key]

    @pytest.mark.asyncio
    async def test_replacement_swaps_payload_and_drops_old(self, service, object_store, draft) -> None:
        created = await service.create(draft, "alice", _pdf(b"%PDF v1"))

        updated = await service.update(created.id, DocumentPatch(), "alice", _pdf(b"%PDF v2", "v2.pdf"))

        assert updated.binary_key != created.binary_key
        assert (await service.fetch_binary(created.id)).content == b"%PDF v2"
        assert await object_store.exists(created.binary_key) is False
        assert updated.created_at == created.created_at
        assert updated.title == created.title

    @pytest.mark.asyncio
    async def test_rejected_upload_leaves_stores_untouched(self, service, object_store, draft) -> None:
        with pytest.raises(ValidationFailedError):
            await service.create(draft, "alice", Upload(content=b"x", content_type="text/plain", filename="x.txt"))

        assert await object_store.list_objects() == []
        assert await service.count_all() == 0


# ── Search & pagination ────────────────────────────────────────────────────────

class TestSearchAndPagination:

    @pytest.mark.asyncio
    async def test_author_search_returns_matching_subset_newest_first(self, service) -> None:
        authors = ["John Smith", "Jane Doe", "smithers, W.", "A. Nguyen", "K. SMITH"]
        for i, name in enumerate(authors):
            await service.create(DocumentDraft(title=f"Paper {i}", authors=name), "alice", _pdf())

        page = await service.search(author="Smith", topic=None, keyword=None, page=0, page_size=10)

        assert [d.authors for d in page.items] == ["K. SMITH", "smithers, W.", "John Smith"]
        assert page.total == 3

    @pytest.mark.asyncio
    async def test_pages_of_ten_over_twenty_five(self, service) -> None:
        for i in range(25):
            await service.create(DocumentDraft(title=f"Paper {i}", authors="Smith"), "alice", _pdf())

        sizes = [len((await service.search(author="smith", page=p, page_size=10)).items) for p in range(4)]

        assert sizes == [10, 10, 5, 0]

    @pytest.mark.asyncio
    async def test_pages_do_not_overlap(self, service) -> None:
        for i in range(25):
            await service.create(DocumentDraft(title=f"Paper {i}", authors="Smith"), "alice", _pdf())

        ids = []
        for p in range(3):
            ids.extend(d.id for d in (await service.search(page=p, page_size=10)).items)

        assert len(ids) == len(set(ids)) == 25

    @pytest.mark.asyncio
    async def test_owner_listing_and_count(self, service) -> None:
        for owner in ["alice", "bob", "alice"]:
            await service.create(DocumentDraft(title="T", authors="A"), owner, _pdf())

        page = await service.list_by_owner("alice", page=0, page_size=10)

        assert await service.count_by_owner("alice") == 2
        assert {d.owner_id for d in page.items} == {"alice"}

    @pytest.mark.asyncio
    async def test_topics(self, service) -> None:
        for topic in ["CS", "Math", "CS", None]:
            await service.create(DocumentDraft(title="T", authors="A", topic=topic), "alice", _pdf())

        assert await service.distinct_topics() == {"CS", "Math"}


# ── Interleaving ───────────────────────────────────────────────────────────────

class _ProbedObjects(FilesystemObjectStore):
    """Refuses to delete a key that a record still references."""

    def __init__(self, root, records_probe) -> None:
        super().__init__(root)
        self.records_probe = records_probe
        self.hold_next_put: asyncio.Event | None = None

    async def put(self, content: bytes, extension: str) -> str:
        gate, self.hold_next_put = self.hold_next_put, None
        if gate is not None:
            await gate.wait()
        return await super().put(content, extension)

    async def delete(self, key: str) -> bool:
        assert key not in await self.records_probe.binary_keys(), f"deleting referenced payload {key}"
        return await super().delete(key)


class _ProbedRecords(SqlMetadataStore):
    """Checks every committed record points at an existing payload."""

    objects_probe: FilesystemObjectStore
    hold_next_metadata_update: asyncio.Event | None = None

    async def update(self, document, fields=None):
        if fields is not None and "binary_key" not in fields and self.hold_next_metadata_update is not None:
            gate, self.hold_next_metadata_update = self.hold_next_metadata_update, None
            await gate.wait()
        result = await super().update(document, fields)
        assert await self.objects_probe.exists(result.binary_key), "record points at a missing payload"
        return result


@pytest_asyncio.fixture
async def probed(tmp_path):
    records = _ProbedRecords(f"sqlite+aiosqlite:///{tmp_path / 'probe.db'}")
    await records.create_schema()
    objects = _ProbedObjects(tmp_path / "objects", records)
    records.objects_probe = objects
    service = CatalogService(objects=objects, records=records)
    yield service, records, objects
    await records.dispose()


class TestInterleavedUpdates:

    @pytest.mark.asyncio
    async def test_two_replacements_never_expose_missing_payload(self, probed, draft) -> None:
        service, records, objects = probed
        created = await service.create(draft, "alice", _pdf(b"%PDF v0"))

        gate = asyncio.Event()
        objects.hold_next_put = gate
        first = asyncio.create_task(service.update(created.id, DocumentPatch(), "alice", _pdf(b"%PDF A")))
        await asyncio.sleep(0.05)  # first update is now parked inside put()

        await service.update(created.id, DocumentPatch(), "alice", _pdf(b"%PDF B"))
        gate.set()
        await first

        final = await records.get(created.id)
        assert (await service.fetch_binary(created.id)).content == b"%PDF A"
        assert await objects.exists(final.binary_key)
        assert await objects.exists(created.binary_key) is False

        # B's payload is now unreferenced and is what a sweep reclaims.
        removed = await service.sweep_orphans(grace=timedelta(0))
        assert len(removed) == 1
        assert [o.key for o in await objects.list_objects()] == [final.binary_key]

    @pytest.mark.asyncio
    async def test_stale_metadata_patch_cannot_restore_deleted_payload(self, probed, draft) -> None:
        service, records, objects = probed
        created = await service.create(draft, "alice", _pdf(b"%PDF v0"))

        gate = asyncio.Event()
        records.hold_next_metadata_update = gate
        patching = asyncio.create_task(service.update(created.id, DocumentPatch(title="Renamed"), "alice"))
        await asyncio.sleep(0.05)  # patch has read the record holding v0, not yet committed

        replaced = await service.update(created.id, DocumentPatch(), "alice", _pdf(b"%PDF v1"))
        gate.set()
        patched = await patching

        assert patched.title == "Renamed"
        assert patched.binary_key == replaced.binary_key
        assert (await service.fetch_binary(created.id)).content == b"%PDF v1"
