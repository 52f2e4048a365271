"""
catalog/storage/base.py

Abstract interface for the binary object store.

Design goals:
  - Services depend only on this interface, never on a concrete backend.
  - Keys are opaque, generated by the store, and never reused.
  - Deleting a missing key is not an error, so cleanup can be best effort.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from catalog.models.domain import StoredObject


class ObjectStore(ABC):
    """
    Contract every binary store backend must fulfil.

    Concrete implementations (e.g. FilesystemObjectStore) wrap a specific
    medium and translate its API to this interface.
    """

    @abstractmethod
    async def put(self, content: bytes, extension: str) -> str:
        """
        Durably persist a payload under a freshly generated key.

        Args:
            content   : Raw bytes to store.
            extension : Suggested extension (e.g. ".pdf"), appended to the key.

        Returns:
            The storage key. Unique within the store.

        Raises:
            StorageFailureError: If the write fails.
        """

    @abstractmethod
    async def get(self, key: str) -> bytes:
        """
        Return the exact bytes stored under ``key``.

        Raises:
            NotFoundError:       If no object exists under ``key``.
            StorageFailureError: If the read fails.
        """

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """
        Remove the object stored under ``key``.

        Returns:
            True if an object was removed, False if the key was already absent.

        Raises:
            StorageFailureError: If the object exists but cannot be removed.
        """

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Return True when an object is stored under ``key``."""

    @abstractmethod
    async def list_objects(self) -> List[StoredObject]:
        """
        List every stored object with its last-modified time.

        Used by maintenance sweeps; not part of the request path.
        """
