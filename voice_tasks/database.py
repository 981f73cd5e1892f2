# voice_tasks/database.py

import logging
from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from voice_tasks.models import Base

logger = logging.getLogger(__name__)


def create_engine(database_url: str) -> AsyncEngine:
    """Creates the process-wide async engine."""
    # Only the scheme is logged; the rest of the URL may carry credentials
    logger.info("Creating database engine", extra={"scheme": database_url.split("://", 1)[0]})
    return create_async_engine(database_url)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


async def init_models(engine: AsyncEngine) -> None:
    """
    Creates missing tables.

    This is the first statement the engine runs, so an unreachable database
    surfaces here and aborts startup.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("✅ Database schema ready")


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yields a session from the factory the app was started with."""
    async with request.app.state.session_factory() as session:
        yield session
