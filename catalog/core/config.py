"""
catalog/core/config.py

Centralised configuration loaded from environment variables.
Use a .env file locally; Docker Compose injects these at runtime.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # ── Application ────────────────────────────────────────────────────────────
    app_name: str = "Document Catalog API"
    app_version: str = "1.0.0"
    debug: bool = False

    # ── Metadata store (SQLAlchemy) ────────────────────────────────────────────
    database_url: str = "sqlite+aiosqlite:///./data/catalog.db"
    database_echo: bool = False

    # ── Binary object store (filesystem) ───────────────────────────────────────
    upload_dir: str = "./uploads"
    documents_subdir: str = "articles"
    avatars_subdir: str = "avatars"

    # ── Upload policy ──────────────────────────────────────────────────────────
    max_document_bytes: int = 10 * 1024 * 1024   # 10 MiB
    max_avatar_bytes: int = 2 * 1024 * 1024      # 2 MiB

    # ── Pagination ─────────────────────────────────────────────────────────────
    default_page_size: int = 10
    max_page_size: int = 100

    # ── Maintenance ────────────────────────────────────────────────────────────
    orphan_grace_seconds: int = 3600   # unreferenced binaries younger than this are kept

    # ── Transport ──────────────────────────────────────────────────────────────
    owner_header: str = "X-Owner-Id"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


# Single shared instance; import this everywhere.
settings = Settings()
