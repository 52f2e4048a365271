"""
tests/services/test_avatar_service.py

Unit tests for AvatarService over a filesystem store in tmp_path.
"""

from unittest.mock import AsyncMock

import pytest

from catalog.core.exceptions import NotFoundError, RejectionReason, ValidationFailedError
from catalog.models.domain import Upload
from catalog.services.avatar_service import AvatarService
from catalog.storage.filesystem_store import FilesystemObjectStore

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def _image(content: bytes = PNG, content_type: str = "image/png", filename: str = "me.png", size=None) -> Upload:
    return Upload(content=content, content_type=content_type, filename=filename, size=size)


@pytest.fixture
def avatar_store(tmp_path) -> FilesystemObjectStore:
    return FilesystemObjectStore(tmp_path / "avatars", default_extension=".png")


@pytest.fixture
def service(avatar_store) -> AvatarService:
    return AvatarService(objects=avatar_store)


class TestStoreAvatar:

    @pytest.mark.asyncio
    async def test_stored_avatar_can_be_fetched(self, service) -> None:
        key = await service.store_avatar("alice", _image())

        assert key.endswith(".png")
        assert await service.fetch_avatar(key) == PNG

    @pytest.mark.asyncio
    async def test_jpeg_keeps_its_extension(self, service) -> None:
        key = await service.store_avatar("alice", _image(content_type="image/jpeg", filename="me.JPG"))

        assert key.endswith(".jpg")

    @pytest.mark.asyncio
    async def test_previous_avatar_is_removed(self, service, avatar_store) -> None:
        first = await service.store_avatar("alice", _image())

        second = await service.store_avatar("alice", _image(b"\x89PNG second"), previous_key=first)

        assert await avatar_store.exists(first) is False
        assert await service.fetch_avatar(second) == b"\x89PNG second"

    @pytest.mark.asyncio
    async def test_pdf_is_rejected_and_nothing_stored(self, service, avatar_store) -> None:
        with pytest.raises(ValidationFailedError) as info:
            await service.store_avatar("alice", _image(b"%PDF", "application/pdf", "cv.pdf"))

        assert info.value.reason is RejectionReason.WRONG_CONTENT_TYPE
        assert await avatar_store.list_objects() == []

    @pytest.mark.asyncio
    async def test_oversized_image_rejected(self, service) -> None:
        with pytest.raises(ValidationFailedError) as info:
            await service.store_avatar("alice", _image(size=2 * 1024 * 1024 + 1))

        assert info.value.reason is RejectionReason.TOO_LARGE

    @pytest.mark.asyncio
    async def test_failed_cleanup_of_previous_avatar_is_not_raised(self) -> None:
        objects = AsyncMock()
        objects.put.return_value = "new.png"
        objects.delete.side_effect = OSError("read-only")

        key = await AvatarService(objects=objects).store_avatar("alice", _image(), previous_key="old.png")

        assert key == "new.png"
        objects.delete.assert_awaited_once_with("old.png")


class TestFetchAvatar:

    @pytest.mark.asyncio
    async def test_unknown_key_raises_not_found(self, service) -> None:
        with pytest.raises(NotFoundError):
            await service.fetch_avatar("missing.png")
