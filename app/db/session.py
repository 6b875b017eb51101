# app/db/session.py
from typing import AsyncGenerator

from fastapi import Depends
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.settings import settings


def _engine_options(url: str) -> dict:
    options: dict = {"echo": settings.DATABASE_ECHO, "pool_pre_ping": True}
    if not url.startswith("sqlite"):
        options["pool_size"] = settings.DATABASE_POOL_SIZE
        options["max_overflow"] = settings.DATABASE_MAX_OVERFLOW
    return options


def build_engine(url: str) -> AsyncEngine:
    engine = create_async_engine(url, **_engine_options(url))
    if url.startswith("sqlite"):
        # ON DELETE CASCADE / SET NULL are off by default in sqlite
        @event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,  # objects stay readable after commit
    )


engine = build_engine(settings.DATABASE_ASYNC_URL)

AsyncSessionLocal = build_session_factory(engine)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory dependency.
    Used directly by code that must control the session lifetime itself
    (e.g. content streaming releases its connection before sending bytes).
    """
    return AsyncSessionLocal


async def get_session(
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> AsyncGenerator[AsyncSession, None]:
    async with factory() as session:
        try:
            yield session
        finally:
            await session.close()
