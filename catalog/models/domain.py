"""
catalog/models/domain.py

Shared vocabulary passed between the stores, the guard and the service.

These are plain dataclasses: records are always detached values, there is
no lazily loaded owner or collection hanging off them. Owners are referred
to by an opaque identifier only.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from typing import Generic, List, Optional, TypeVar

T = TypeVar("T")

#: Opaque identity supplied by the (external) identity subsystem.
OwnerId = str


@dataclass
class Document:
    """
    A catalogued document's metadata row. The payload itself lives in the
    object store under ``binary_key``.

    Attributes:
        id                : Assigned by the metadata store on create, then immutable.
        title             : Non-blank.
        authors           : Non-blank, at most 500 characters.
        publication_year  : Optional.
        keywords          : Optional, at most 1000 characters.
        topic             : Optional, used for exact-match filtering.
        binary_key        : Object store key of the current payload.
        original_filename : Upload filename, used for download headers.
        size_bytes        : Payload size.
        created_at        : Set once at creation.
        owner_id          : Creating account; never reassigned.
    """

    title: str
    authors: str
    binary_key: str
    original_filename: str
    size_bytes: int
    created_at: datetime
    owner_id: OwnerId
    publication_year: Optional[int] = None
    keywords: Optional[str] = None
    topic: Optional[str] = None
    id: Optional[int] = None

    def copy(self, **changes) -> "Document":
        return replace(self, **changes)


#: Columns a sparse patch or a full replace may touch.
METADATA_FIELDS = ("title", "authors", "publication_year", "keywords", "topic")
BINARY_FIELDS = ("binary_key", "original_filename", "size_bytes")
MUTABLE_FIELDS = METADATA_FIELDS + BINARY_FIELDS


@dataclass
class DocumentDraft:
    """Metadata submitted on creation. Title and authors are required."""

    title: str
    authors: str
    publication_year: Optional[int] = None
    keywords: Optional[str] = None
    topic: Optional[str] = None


@dataclass
class DocumentPatch:
    """
    Sparse update: ``None`` or a blank string means "leave unchanged",
    never "clear".
    """

    title: Optional[str] = None
    authors: Optional[str] = None
    publication_year: Optional[int] = None
    keywords: Optional[str] = None
    topic: Optional[str] = None

    def changes(self) -> dict:
        """Return only the fields that should overwrite the stored value."""
        out = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            if isinstance(value, str):
                if not value.strip():
                    continue
                if f.name in ("title", "authors"):
                    value = value.strip()
            out[f.name] = value
        return out


@dataclass
class Upload:
    """
    An incoming binary payload as described by the transport layer.

    ``size`` is the declared size; when the transport does not declare one
    the actual content length is used.
    """

    content: bytes
    content_type: Optional[str]
    filename: Optional[str]
    size: Optional[int] = None

    def __post_init__(self) -> None:
        if self.size is None:
            self.size = len(self.content or b"")


@dataclass
class BinaryPayload:
    """Bytes returned for a download, plus what a Content-Disposition needs."""

    content: bytes
    filename: str
    media_type: str


@dataclass
class StoredObject:
    """A single entry of an object store listing."""

    key: str
    modified_at: datetime


@dataclass
class Page(Generic[T]):
    """
    One slice of an ordered result set.

    Attributes:
        items  : Records on this page (possibly empty).
        total  : Number of matching records across all pages.
        limit  : Page size.
        offset : Index of the first item within the full result set.
    """

    items: List[T] = field(default_factory=list)
    total: int = 0
    limit: int = 10
    offset: int = 0

    @property
    def page(self) -> int:
        return self.offset // self.limit if self.limit else 0

    @property
    def has_next(self) -> bool:
        return self.offset + self.limit < self.total
