"""
catalog/api/dependencies.py

FastAPI dependencies shared by the routers.

Tests swap the service out through ``app.dependency_overrides``.
"""

from typing import Optional

from fastapi import Request

from catalog.core.config import settings
from catalog.services.catalog_service import CatalogService, catalog_service


def get_catalog_service() -> CatalogService:
    return catalog_service


def get_caller(request: Request) -> Optional[str]:
    """
    Opaque identity of the caller, as set by the upstream identity layer.

    No authentication happens here; a missing or blank header means an
    anonymous caller.
    """
    value = request.headers.get(settings.owner_header, "").strip()
    return value or None
