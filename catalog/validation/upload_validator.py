"""
catalog/validation/upload_validator.py

Acceptance rules for an incoming payload and its metadata.

Rules are checked in a fixed order and the first failure wins:

    1. payload non-empty
    2. declared size within the policy ceiling
    3. declared content-type accepted by the policy
    4. original filename present
    5. title / authors non-blank (creation only)
    6. column length limits

Validation is purely advisory: nothing here touches a store or raises.
Callers decide how to surface a rejection.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from catalog.core.config import settings
from catalog.core.constants import (
    AUTHORS_MAX_LENGTH,
    IMAGE_CONTENT_TYPE_PREFIX,
    KEYWORDS_MAX_LENGTH,
    PDF_CONTENT_TYPE,
    TITLE_MAX_LENGTH,
    TOPIC_MAX_LENGTH,
)
from catalog.core.exceptions import RejectionReason, ValidationFailedError
from catalog.models.domain import Upload

_FIELD_LIMITS = (
    ("title", TITLE_MAX_LENGTH),
    ("authors", AUTHORS_MAX_LENGTH),
    ("keywords", KEYWORDS_MAX_LENGTH),
    ("topic", TOPIC_MAX_LENGTH),
)


@dataclass(frozen=True)
class UploadPolicy:
    """
    What a given target store accepts.

    Attributes:
        name         : Label used in rejection messages ("document", "avatar").
        max_bytes    : Ceiling on the declared size.
        content_type : Exact media type, or a prefix when ``prefix_match`` is set.
        prefix_match : Accept any type starting with ``content_type``.
    """

    name: str
    max_bytes: int
    content_type: str
    prefix_match: bool = False

    def accepts(self, content_type: Optional[str]) -> bool:
        if not content_type:
            return False
        if self.prefix_match:
            return content_type.startswith(self.content_type)
        return content_type == self.content_type


def document_policy() -> UploadPolicy:
    return UploadPolicy(name="document", max_bytes=settings.max_document_bytes, content_type=PDF_CONTENT_TYPE)


def avatar_policy() -> UploadPolicy:
    return UploadPolicy(
        name="avatar",
        max_bytes=settings.max_avatar_bytes,
        content_type=IMAGE_CONTENT_TYPE_PREFIX,
        prefix_match=True,
    )


@dataclass(frozen=True)
class ValidationResult:
    accepted: bool
    reason: Optional[RejectionReason] = None
    message: str = ""

    def raise_for_rejection(self) -> None:
        """Turn a rejection into a ValidationFailedError; no-op when accepted."""
        if not self.accepted:
            raise ValidationFailedError(self.reason, self.message)  # type: ignore[arg-type]


ACCEPTED = ValidationResult(accepted=True)


def _reject(reason: RejectionReason, message: str) -> ValidationResult:
    return ValidationResult(accepted=False, reason=reason, message=message)


class UploadValidator:
    """Stateless checker for uploads and metadata fields."""

    def validate(
        self,
        upload: Optional[Upload],
        policy: UploadPolicy,
        metadata: Optional[Mapping[str, object]] = None,
        require_identity: bool = False,
    ) -> ValidationResult:
        """
        Check an upload (and optionally its metadata) against ``policy``.

        Args:
            upload           : Candidate payload; None counts as empty.
            policy           : Target store's acceptance rules.
            metadata         : Title/authors/keywords/topic to check alongside.
            require_identity : Title and authors must be present and non-blank.

        Returns:
            ACCEPTED, or a ValidationResult naming the first broken rule.
        """
        if upload is None or not upload.content:
            return _reject(RejectionReason.EMPTY_PAYLOAD, f"The {policy.name} file must not be empty.")

        if (upload.size or 0) > policy.max_bytes:
            return _reject(
                RejectionReason.TOO_LARGE,
                f"The {policy.name} file is too large (maximum {policy.max_bytes // (1024 * 1024)} MB).",
            )

        if not policy.accepts(upload.content_type):
            expected = f"{policy.content_type}*" if policy.prefix_match else policy.content_type
            return _reject(
                RejectionReason.WRONG_CONTENT_TYPE,
                f"The {policy.name} file must be of type {expected}.",
            )

        if not upload.filename or not upload.filename.strip():
            return _reject(RejectionReason.MISSING_FILENAME, "The file name must not be empty.")

        return self.validate_metadata(metadata or {}, require_identity=require_identity)

    def validate_metadata(
        self, metadata: Mapping[str, object], require_identity: bool = False
    ) -> ValidationResult:
        """Rules 5 and 6 alone, for metadata-only updates."""
        if require_identity:
            if not _non_blank(metadata.get("title")):
                return _reject(RejectionReason.BLANK_TITLE, "Title must not be empty.")
            if not _non_blank(metadata.get("authors")):
                return _reject(RejectionReason.BLANK_AUTHORS, "Authors must not be empty.")

        for name, limit in _FIELD_LIMITS:
            value = metadata.get(name)
            if isinstance(value, str) and len(value) > limit:
                return _reject(
                    RejectionReason.FIELD_TOO_LONG,
                    f"Field '{name}' must be at most {limit} characters.",
                )
        return ACCEPTED


def _non_blank(value: object) -> bool:
    return isinstance(value, str) and bool(value.strip())
