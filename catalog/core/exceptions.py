"""
catalog/core/exceptions.py

Custom exception hierarchy for the application.

Every exception carries a structured ``kind`` plus the fields a boundary
needs to build its own user-facing message. Controllers translate the kind
into an HTTP status; raw infrastructure text never reaches the caller.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    VALIDATION_FAILED = "validation_failed"
    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    STORAGE_FAILURE = "storage_failure"


class RejectionReason(str, Enum):
    """Why the validation pipeline refused an upload or a set of fields."""

    EMPTY_PAYLOAD = "empty_payload"
    TOO_LARGE = "too_large"
    WRONG_CONTENT_TYPE = "wrong_content_type"
    MISSING_FILENAME = "missing_filename"
    BLANK_TITLE = "blank_title"
    BLANK_AUTHORS = "blank_authors"
    FIELD_TOO_LONG = "field_too_long"
    INVALID_PAGINATION = "invalid_pagination"


class AppBaseException(Exception):
    """Root exception — catch-all for any application-level error."""

    kind: ErrorKind = ErrorKind.STORAGE_FAILURE


# ── Caller-correctable ─────────────────────────────────────────────────────────

class ValidationFailedError(AppBaseException):
    """Raised when input is malformed, oversized, of the wrong type or blank."""

    kind = ErrorKind.VALIDATION_FAILED

    def __init__(self, reason: RejectionReason, message: str) -> None:
        super().__init__(message)
        self.reason = reason
        self.message = message


class NotFoundError(AppBaseException):
    """Raised when a requested record or binary does not exist."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, entity: str, identifier: object) -> None:
        super().__init__(f"{entity} '{identifier}' not found")
        self.entity = entity
        self.identifier = identifier


class PermissionDeniedError(AppBaseException):
    """Raised when a caller attempts to mutate a record owned by someone else."""

    kind = ErrorKind.PERMISSION_DENIED

    def __init__(self, owner_id: str, caller_id: Optional[str], reason: str) -> None:
        super().__init__(reason)
        self.owner_id = owner_id
        self.caller_id = caller_id
        self.reason = reason


# ── Infrastructure ─────────────────────────────────────────────────────────────

class StorageFailureError(AppBaseException):
    """
    Raised when the object store or metadata store fails underneath us.

    Treated as transient: the core never retries, the caller decides.
    The original error is chained via ``raise ... from``.
    """

    kind = ErrorKind.STORAGE_FAILURE

    def __init__(self, operation: str, detail: str = "") -> None:
        super().__init__(f"{operation} failed: {detail}" if detail else f"{operation} failed")
        self.operation = operation
