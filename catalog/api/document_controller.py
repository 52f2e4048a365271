"""
catalog/api/document_controller.py

Handles incoming requests under /documents/.

This layer is responsible only for HTTP concerns:
  - Parsing multipart forms and query strings.
  - Reading the caller identity supplied by the upstream identity layer.
  - Delegating the actual work to CatalogService.
  - Translating structured service errors into HTTP responses. Messages
    are built here from the error kind; infrastructure text never leaks.

Responses:
  200/201/204  The operation succeeded.
  400  Input was rejected: empty, oversized or non-PDF upload, blank
       title/authors, or a bad page window.
  401  A mutating request arrived without a caller identity.
  403  The caller does not own the document.
  404  The document, or its stored file, does not exist.
  500  A store failed; the body carries a generic message only.
"""

from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import JSONResponse, Response

from catalog.api.dependencies import get_caller, get_catalog_service
from catalog.core.exceptions import (
    AppBaseException,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)
from catalog.core.logger import get_logger
from catalog.models.document_models import (
    DocumentOut,
    DocumentPageOut,
    OwnerDocumentsOut,
    TopicsOut,
)
from catalog.models.domain import DocumentDraft, DocumentPatch, Upload
from catalog.services.catalog_service import CatalogService

logger = get_logger(__name__)

router = APIRouter(prefix="/documents", tags=["Documents"])

# ── Helpers ────────────────────────────────────────────────────────────────────

def _err(message: str, status: int = 400, kind: str = "validation_failed") -> JSONResponse:
    """Return a JSON error response with the standard error shape."""
    return JSONResponse(status_code=status, content={"error": message, "kind": kind})


def error_response(exc: AppBaseException) -> JSONResponse:
    """Map a structured service error to its HTTP response."""
    if isinstance(exc, ValidationFailedError):
        return _err(exc.message, 400, exc.kind.value)
    if isinstance(exc, NotFoundError):
        message = "Document file not found." if exc.entity == "binary" else "Document not found."
        return _err(message, 404, exc.kind.value)
    if isinstance(exc, PermissionDeniedError):
        return _err("You can only modify your own documents.", 403, exc.kind.value)
    logger.error("Storage failure surfaced to client: %s", exc)
    return _err("The document store is temporarily unavailable.", 500, exc.kind.value)


def _unauthenticated() -> JSONResponse:
    return _err("A caller identity is required.", 401, "unauthenticated")


async def _to_upload(file: Optional[UploadFile]) -> Optional[Upload]:
    """None when the form carried no file (or an empty, unnamed file part)."""
    if file is None:
        return None
    content = await file.read()
    if not content and not file.filename:
        return None
    return Upload(
        content=content,
        content_type=file.content_type,
        filename=file.filename,
        size=file.size if file.size is not None else len(content),
    )


# ── Endpoints ──────────────────────────────────────────────────────────────────

@router.post("/", status_code=201, response_model=DocumentOut, summary="Catalogue a new document")
async def create_document(
    title: str = Form(""),
    authors: str = Form(""),
    publication_year: Optional[int] = Form(None),
    keywords: Optional[str] = Form(None),
    topic: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    caller: Optional[str] = Depends(get_caller),
    service: CatalogService = Depends(get_catalog_service),
) -> Response:
    if caller is None:
        return _unauthenticated()

    draft = DocumentDraft(
        title=title,
        authors=authors,
        publication_year=publication_year,
        keywords=keywords,
        topic=topic,
    )
    try:
        document = await service.create(draft, caller, await _to_upload(file))
    except AppBaseException as exc:
        return error_response(exc)

    return JSONResponse(status_code=201, content=DocumentOut.from_document(document).model_dump(mode="json"))


@router.get("/", response_model=DocumentPageOut, summary="Search the catalogue")
async def search_documents(
    author: Optional[str] = Query(None),
    topic: Optional[str] = Query(None),
    keyword: Optional[str] = Query(None),
    page: int = Query(0),
    size: Optional[int] = Query(None),
    service: CatalogService = Depends(get_catalog_service),
) -> Response:
    try:
        result = await service.search(author, topic, keyword, page=page, page_size=size)
    except AppBaseException as exc:
        return error_response(exc)
    return JSONResponse(status_code=200, content=DocumentPageOut.from_page(result).model_dump(mode="json"))


@router.get("/mine", response_model=OwnerDocumentsOut, summary="List or search the caller's documents")
async def my_documents(
    q: Optional[str] = Query(None),
    page: int = Query(0),
    size: Optional[int] = Query(None),
    caller: Optional[str] = Depends(get_caller),
    service: CatalogService = Depends(get_catalog_service),
) -> Response:
    if caller is None:
        return _unauthenticated()
    try:
        result = await service.search_owned(caller, q, page=page, page_size=size)
        owned_total = await service.count_by_owner(caller)
    except AppBaseException as exc:
        return error_response(exc)

    body = OwnerDocumentsOut(
        **DocumentPageOut.from_page(result).model_dump(),
        owned_total=owned_total,
    )
    return JSONResponse(status_code=200, content=body.model_dump(mode="json"))


@router.get("/topics", response_model=TopicsOut, summary="Topics currently in use")
async def list_topics(service: CatalogService = Depends(get_catalog_service)) -> Response:
    try:
        topics = await service.distinct_topics()
    except AppBaseException as exc:
        return error_response(exc)
    return JSONResponse(status_code=200, content=TopicsOut(topics=sorted(topics)).model_dump())


@router.get("/{document_id}", response_model=DocumentOut, summary="Fetch one document's metadata")
async def get_document(document_id: int, service: CatalogService = Depends(get_catalog_service)) -> Response:
    try:
        document = await service.get(document_id)
    except AppBaseException as exc:
        return error_response(exc)
    return JSONResponse(status_code=200, content=DocumentOut.from_document(document).model_dump(mode="json"))


@router.put("/{document_id}", response_model=DocumentOut, summary="Update a document (sparse)")
async def update_document(
    document_id: int,
    title: Optional[str] = Form(None),
    authors: Optional[str] = Form(None),
    publication_year: Optional[int] = Form(None),
    keywords: Optional[str] = Form(None),
    topic: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    caller: Optional[str] = Depends(get_caller),
    service: CatalogService = Depends(get_catalog_service),
) -> Response:
    """Fields left out, or sent blank, keep their stored value."""
    if caller is None:
        return _unauthenticated()

    patch = DocumentPatch(
        title=title,
        authors=authors,
        publication_year=publication_year,
        keywords=keywords,
        topic=topic,
    )
    try:
        document = await service.update(document_id, patch, caller, await _to_upload(file))
    except AppBaseException as exc:
        return error_response(exc)
    return JSONResponse(status_code=200, content=DocumentOut.from_document(document).model_dump(mode="json"))


@router.delete("/{document_id}", status_code=204, summary="Delete a document and its file")
async def delete_document(
    document_id: int,
    caller: Optional[str] = Depends(get_caller),
    service: CatalogService = Depends(get_catalog_service),
) -> Response:
    if caller is None:
        return _unauthenticated()
    try:
        await service.delete(document_id, caller)
    except AppBaseException as exc:
        return error_response(exc)
    return Response(status_code=204)


@router.get("/{document_id}/download", summary="Download the stored PDF")
async def download_document(document_id: int, service: CatalogService = Depends(get_catalog_service)) -> Response:
    try:
        payload = await service.fetch_binary(document_id)
    except AppBaseException as exc:
        return error_response(exc)

    disposition = f"attachment; filename*=UTF-8''{quote(payload.filename)}"
    return Response(
        content=payload.content,
        media_type=payload.media_type,
        headers={"Content-Disposition": disposition},
    )
