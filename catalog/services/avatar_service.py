"""
catalog/services/avatar_service.py

Stores account avatar images in their own object store.

Accounts live outside this package, so the service only hands back a key;
the caller records it against the account and passes it back as
``previous_key`` on the next upload.
"""

from __future__ import annotations

from typing import Optional

from catalog.core.config import settings
from catalog.core.logger import get_logger
from catalog.models.domain import OwnerId, Upload
from catalog.storage.base import ObjectStore
from catalog.storage.filesystem_store import FilesystemObjectStore, extension_for
from catalog.validation.upload_validator import UploadPolicy, UploadValidator, avatar_policy

logger = get_logger(__name__)

_DEFAULT_AVATAR_EXTENSION = ".png"


class AvatarService:
    """Same constructor-injection pattern as CatalogService."""

    def __init__(
        self,
        objects: ObjectStore | None = None,
        validator: UploadValidator | None = None,
        policy: UploadPolicy | None = None,
    ) -> None:
        self._objects: ObjectStore = objects or FilesystemObjectStore(
            f"{settings.upload_dir}/{settings.avatars_subdir}",
            default_extension=_DEFAULT_AVATAR_EXTENSION,
        )
        self._validator: UploadValidator = validator or UploadValidator()
        self._policy: UploadPolicy = policy or avatar_policy()

    async def store_avatar(self, owner: OwnerId, upload: Upload, previous_key: Optional[str] = None) -> str:
        """
        Validate and store a new avatar, then drop the one it replaces.

        Args:
            owner        : Account the avatar belongs to (used for logging only).
            upload       : Image payload; at most 2 MiB by default, any image/* type.
            previous_key : Key of the avatar being replaced, if any.

        Returns:
            Storage key of the new avatar.

        Raises:
            ValidationFailedError : The image was rejected; nothing was stored.
            StorageFailureError   : The write failed.
        """
        self._validator.validate(upload, self._policy).raise_for_rejection()

        key = await self._objects.put(
            upload.content, extension_for(upload.filename, default=_DEFAULT_AVATAR_EXTENSION)
        )
        if previous_key and previous_key != key:
            try:
                await self._objects.delete(previous_key)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Could not remove previous avatar '%s': %s", previous_key, exc)

        logger.info("Avatar stored for '%s' as '%s'.", owner, key)
        return key

    async def fetch_avatar(self, key: str) -> bytes:
        """Raises NotFoundError when no avatar is stored under ``key``."""
        return await self._objects.get(key)


avatar_service = AvatarService()
