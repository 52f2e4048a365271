"""catalog/repository/__init__.py — public API of the repository package."""

from catalog.repository.base import MetadataStore
from catalog.repository.sql_store import SqlMetadataStore

__all__ = [
    "MetadataStore",
    "SqlMetadataStore",
]
