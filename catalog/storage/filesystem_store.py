"""
catalog/storage/filesystem_store.py

Filesystem implementation of the ObjectStore interface.

Every object is a single file directly under the store's root directory.
Blocking file I/O is pushed to a worker thread so the event loop is never
held up by a large upload.
"""

from __future__ import annotations

import asyncio
import os
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import List

from catalog.core.constants import (
    DEFAULT_DOCUMENT_EXTENSION,
    EXTENSION_PATTERN,
    STORAGE_KEY_PATTERN,
)
from catalog.core.exceptions import NotFoundError, StorageFailureError
from catalog.core.logger import get_logger
from catalog.models.domain import StoredObject
from catalog.storage.base import ObjectStore

logger = get_logger(__name__)

_TMP_PREFIX = "."
_TMP_SUFFIX = ".part"


def extension_for(filename: str | None, default: str = DEFAULT_DOCUMENT_EXTENSION) -> str:
    """
    Derive a safe, lower-cased extension from an original filename.

    Anything that is not a dot followed by 1-10 alphanumerics falls back to
    ``default``, so a key can never pick up separators from user input.
    """
    suffix = Path(filename or "").suffix.lower()
    return suffix if EXTENSION_PATTERN.match(suffix) else default


class FilesystemObjectStore(ObjectStore):
    """
    ObjectStore backed by a local directory.

    Keys look like ``<epoch-millis>_<uuid4-hex><ext>``. Writes go to a hidden
    temp file in the same directory, are fsynced, and are then atomically
    renamed into place, so a reader never observes a partial object.
    """

    def __init__(self, root: str | Path, default_extension: str = DEFAULT_DOCUMENT_EXTENSION) -> None:
        """
        Args:
            root              : Directory holding the objects. Created on first write.
            default_extension : Used when ``put`` receives an unusable extension.
        """
        self._root = Path(root)
        self._default_extension = default_extension
        logger.info("Initialising FilesystemObjectStore — root=%s", self._root)

    @property
    def root(self) -> Path:
        return self._root

    # ── ObjectStore interface ──────────────────────────────────────────────────

    async def put(self, content: bytes, extension: str) -> str:
        """Write ``content`` under a new key and return the key."""
        ext = extension.lower() if EXTENSION_PATTERN.match(extension.lower()) else self._default_extension
        key = self._generate_key(ext)
        path = self._root / key

        write = asyncio.ensure_future(asyncio.to_thread(self._write_atomic, path, content))
        try:
            await asyncio.shield(write)
        except asyncio.CancelledError:
            # The worker thread cannot be interrupted; discard its output once it ends.
            write.add_done_callback(lambda task: self._discard_abandoned(task, path))
            logger.warning("Write of '%s' cancelled — object will be discarded.", key)
            raise
        except OSError as exc:
            raise StorageFailureError("object write", str(exc)) from exc

        logger.debug("Stored object '%s' (%d bytes).", key, len(content))
        return key

    async def get(self, key: str) -> bytes:
        path = self._path_for(key)
        if path is None:
            raise NotFoundError("binary", key)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError as exc:
            raise NotFoundError("binary", key) from exc
        except OSError as exc:
            raise StorageFailureError("object read", str(exc)) from exc

    async def delete(self, key: str) -> bool:
        path = self._path_for(key)
        if path is None:
            return False
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError:
            logger.debug("delete('%s') — already absent.", key)
            return False
        except OSError as exc:
            raise StorageFailureError("object delete", str(exc)) from exc
        logger.debug("Deleted object '%s'.", key)
        return True

    async def exists(self, key: str) -> bool:
        path = self._path_for(key)
        if path is None:
            return False
        return await asyncio.to_thread(path.is_file)

    async def list_objects(self) -> List[StoredObject]:
        try:
            return await asyncio.to_thread(self._scan)
        except OSError as exc:
            raise StorageFailureError("object listing", str(exc)) from exc

    # ── Internals ──────────────────────────────────────────────────────────────

    @staticmethod
    def _generate_key(extension: str) -> str:
        return f"{int(time.time() * 1000)}_{uuid.uuid4().hex}{extension}"

    def _path_for(self, key: str) -> Path | None:
        """Resolve a key to a path, or None when the key is not a plain file name."""
        if not key or ".." in key or not STORAGE_KEY_PATTERN.match(key):
            return None
        return self._root / key

    def _write_atomic(self, path: Path, content: bytes) -> None:
        # Idempotent: concurrent writers may race to create the directory.
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(f"{_TMP_PREFIX}{path.name}{_TMP_SUFFIX}")
        try:
            with open(tmp, "xb") as fh:
                fh.write(content)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp, path)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise

    def _discard_abandoned(self, task: asyncio.Future, path: Path) -> None:
        if not task.cancelled() and task.exception() is not None:
            # The write itself failed; the temp file is already gone.
            return
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not discard abandoned object '%s': %s", path.name, exc)

    def _scan(self) -> List[StoredObject]:
        if not self._root.is_dir():
            return []
        objects: List[StoredObject] = []
        for entry in self._root.iterdir():
            if not entry.is_file() or entry.name.startswith(_TMP_PREFIX):
                continue
            modified = datetime.fromtimestamp(entry.stat().st_mtime, tz=timezone.utc)
            objects.append(StoredObject(key=entry.name, modified_at=modified))
        return objects
