"""Create every table from the ORM models.

Run with ``python -m app.db.models.init_db`` against DATABASE_ASYNC_URL.
"""
import asyncio

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncEngine

from app.db.models.database import Base


async def create_all(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:  # begin() commits or rolls back
        await conn.run_sync(Base.metadata.create_all)


async def main() -> None:
    from app.db.session import engine

    await create_all(engine)
    await engine.dispose()
    logger.success("🎉 Database schema created")


if __name__ == "__main__":
    asyncio.run(main())
