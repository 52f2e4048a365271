"""
catalog/models/document_models.py

Pydantic DTOs for the document endpoints: response shapes only.
Requests arrive as multipart/form-data and are parsed in the controller.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from catalog.models.domain import Document, Page


class DocumentOut(BaseModel):
    """
    A catalogued document as returned to clients.

        {
            "id": 7,
            "title": "Graph Rewriting",
            "authors": "A. Smith, B. Jones",
            "publication_year": 2021,
            "keywords": "graphs, rewriting",
            "topic": "Computer Science",
            "original_filename": "rewriting.pdf",
            "size_bytes": 183204,
            "created_at": "2026-10-19T12:00:00Z",
            "owner_id": "42"
        }

    The storage key is deliberately absent: it is an internal handle.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    authors: str
    publication_year: Optional[int] = None
    keywords: Optional[str] = None
    topic: Optional[str] = None
    original_filename: str
    size_bytes: int
    created_at: datetime
    owner_id: str

    @classmethod
    def from_document(cls, document: Document) -> "DocumentOut":
        return cls.model_validate(document)


class DocumentPageOut(BaseModel):
    """One page of documents plus what a pager needs."""

    items: List[DocumentOut]
    total: int
    page: int
    size: int
    has_next: bool

    @classmethod
    def from_page(cls, page: Page[Document]) -> "DocumentPageOut":
        return cls(
            items=[DocumentOut.from_document(d) for d in page.items],
            total=page.total,
            page=page.page,
            size=page.limit,
            has_next=page.has_next,
        )


class OwnerDocumentsOut(DocumentPageOut):
    """The caller's own documents, with their overall count."""

    owned_total: int


class TopicsOut(BaseModel):
    topics: List[str]
