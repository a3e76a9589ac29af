"""FastAPI dependency injection — DB sessions and the answer recorder.

Each request that touches the database gets a fresh ``AsyncSession`` via
``get_db()``; the repository only flushes, so the commit happens here.
"""

from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from formflow_db.engine import get_session_factory

from formflow_server.recorder import AnswerRecorder


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async DB session; commit on success, rollback on error."""
    factory = get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_recorder(request: Request) -> AnswerRecorder:
    """Return the recorder singleton stashed on ``app.state`` by the lifespan."""
    return request.app.state.recorder
