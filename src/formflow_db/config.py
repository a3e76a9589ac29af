"""Database configuration, read from the environment.

Two ways to point at PostgreSQL:
1. ``DATABASE_URL`` (takes precedence).
2. ``PG_HOST``, ``PG_PORT``, ``PG_USER``, ``PG_PASSWORD``, ``PG_DATABASE``.

``get_sync_url`` feeds Alembic; ``get_async_url`` and ``get_engine_options``
feed the asyncpg engine.
"""

import os
from typing import Any


def _build_url_from_parts() -> str:
    host = os.getenv("PG_HOST", "localhost")
    port = os.getenv("PG_PORT", "5432")
    user = os.getenv("PG_USER", "formflow")
    password = os.getenv("PG_PASSWORD", "formflow")
    database = os.getenv("PG_DATABASE", "formflow")
    return f"postgresql://{user}:{password}@{host}:{port}/{database}"


def get_sync_url() -> str:
    """Synchronous connection URL for migrations."""
    url = os.getenv("DATABASE_URL")
    if url:
        return url.replace("postgresql+asyncpg://", "postgresql://")
    return _build_url_from_parts()


def get_async_url() -> str:
    """asyncpg connection URL for the runtime engine."""
    url = os.getenv("DATABASE_URL") or _build_url_from_parts()
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def get_engine_options() -> dict[str, Any]:
    """Keyword arguments for ``create_async_engine``.

    ``PG_POOL_SIZE`` and ``PG_MAX_OVERFLOW`` size the pool; ``PG_ECHO``
    (``1``/``true``/``yes``) logs every statement.
    """
    return {
        "pool_size": int(os.getenv("PG_POOL_SIZE", "5")),
        "max_overflow": int(os.getenv("PG_MAX_OVERFLOW", "10")),
        "echo": os.getenv("PG_ECHO", "").lower() in ("1", "true", "yes"),
        "pool_pre_ping": True,
    }
