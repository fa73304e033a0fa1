# platform_connect/infrastructure/database.py
from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy.ext.asyncio.engine import create_async_engine, AsyncEngine

from platform_connect.config import DATABASE_URL
from platform_connect.models.platform_connection import PlatformConnection  # noqa: F401 — registers the table

logger = structlog.get_logger(__name__)

engine: AsyncEngine = create_async_engine(DATABASE_URL, echo=False)


async def init_db():
    try:
        async with engine.begin() as connection:
            await connection.run_sync(SQLModel.metadata.create_all)
    except Exception as e:
        logger.exception("db_init_failed", error=str(e))
        raise


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    async with AsyncSession(engine) as session:
        yield session
