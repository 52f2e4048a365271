"""
tests/conftest.py

Shared pytest fixtures available to all test modules.

Fixtures defined here are auto-discovered by pytest — no import needed.
The environment is pointed at throwaway locations *before* the application
is imported, so the module-level singletons never touch ./data or ./uploads.
"""

import io
import os
import tempfile

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="catalog-uploads-"))

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from catalog.main import app  # noqa: E402
from catalog.models.domain import DocumentDraft, Upload  # noqa: E402
from catalog.repository.sql_store import SqlMetadataStore  # noqa: E402
from catalog.storage.filesystem_store import FilesystemObjectStore  # noqa: E402


# ── Core client fixture ────────────────────────────────────────────────────────

@pytest.fixture(scope="session")
def client() -> TestClient:
    """
    A synchronous TestClient wrapping the FastAPI app.

    session-scoped so the app is instantiated once per test run.
    The lifespan context (startup/shutdown events) is entered automatically.
    """
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


# ── Store fixtures ─────────────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def metadata_store() -> SqlMetadataStore:
    """A fresh in-memory SQLite metadata store with its schema created."""
    store = SqlMetadataStore("sqlite+aiosqlite:///:memory:")
    await store.create_schema()
    yield store
    await store.dispose()


@pytest.fixture
def object_store(tmp_path) -> FilesystemObjectStore:
    """A filesystem object store rooted in a per-test temp directory."""
    return FilesystemObjectStore(tmp_path / "objects")


# ── Sample payload fixtures ────────────────────────────────────────────────────

@pytest.fixture
def sample_pdf_bytes() -> bytes:
    """
    Minimal but structurally valid PDF header bytes.
    Enough for content-type / size validation; never parsed.
    """
    return b"%PDF-1.4\n%%EOF"


@pytest.fixture
def pdf_upload(sample_pdf_bytes) -> Upload:
    return Upload(content=sample_pdf_bytes, content_type="application/pdf", filename="paper.pdf")


@pytest.fixture
def draft() -> DocumentDraft:
    return DocumentDraft(
        title="Graph Rewriting",
        authors="Anna Smith, Boris Jones",
        publication_year=2021,
        keywords="graphs, rewriting",
        topic="Computer Science",
    )


@pytest.fixture
def sample_pdf_file(sample_pdf_bytes) -> tuple:
    """
    A (field_name, (filename, file_obj, content_type)) tuple ready for
    use with TestClient's `files=` parameter.
    """
    return ("file", ("sample.pdf", io.BytesIO(sample_pdf_bytes), "application/pdf"))


@pytest.fixture
def sample_txt_file() -> tuple:
    """A non-PDF upload tuple for negative-case tests."""
    return ("file", ("readme.txt", io.BytesIO(b"hello world"), "text/plain"))
