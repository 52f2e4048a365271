"""catalog/storage/__init__.py — public API of the storage package."""

from catalog.storage.base import ObjectStore
from catalog.storage.filesystem_store import FilesystemObjectStore, extension_for

__all__ = [
    "ObjectStore",
    "FilesystemObjectStore",
    "extension_for",
]
