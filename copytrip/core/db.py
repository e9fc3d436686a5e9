from __future__ import annotations

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from copytrip.core.config import Settings, settings


def build_session_factory(config: Settings) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to a fresh engine for ``config.database_url``.

    Creating the engine does not connect; the pool opens on first use.
    """
    engine = create_async_engine(config.database_url, pool_pre_ping=True)
    return async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)


AsyncSessionLocal = build_session_factory(settings)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session
