"""Process-wide async engine for the submission tables.

The engine and its session factory are built together on first use from
:mod:`formflow_db.config` and torn down together by ``dispose_engine()``,
which the server's lifespan calls on shutdown.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from formflow_db.config import get_async_url, get_engine_options

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Database:
    engine: AsyncEngine
    sessions: async_sessionmaker[AsyncSession]


_database: _Database | None = None


def _database_handle() -> _Database:
    global _database
    if _database is None:
        engine = create_async_engine(get_async_url(), **get_engine_options())
        # Rows stay readable after the request dependency commits
        sessions = async_sessionmaker(engine, expire_on_commit=False)
        _database = _Database(engine, sessions)
        logger.info("Database engine created for %s", engine.url.render_as_string(hide_password=True))
    return _database


def get_engine() -> AsyncEngine:
    return _database_handle().engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Factory for request-scoped sessions (see ``formflow_server.dependencies``)."""
    return _database_handle().sessions


async def dispose_engine() -> None:
    """Close the pool; the next ``get_engine()`` builds a fresh one."""
    global _database
    if _database is None:
        return
    database, _database = _database, None
    await database.engine.dispose()
