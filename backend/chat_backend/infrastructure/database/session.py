"""Async engine, session factory and database bootstrap."""

import logging
from collections.abc import AsyncGenerator

from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from chat_backend.config import get_settings

logger = logging.getLogger(__name__)

_ASYNC_DRIVERS = {
    "sqlite": "sqlite+aiosqlite",
    "postgresql": "postgresql+asyncpg",
}


def to_async_url(raw: str) -> URL:
    """Swap a plain ``sqlite``/``postgresql`` URL onto its async driver."""
    url = make_url(raw)
    driver = _ASYNC_DRIVERS.get(url.drivername)
    return url.set(drivername=driver) if driver else url


settings = get_settings()

engine = create_async_engine(
    to_async_url(settings.database_url),
    echo=settings.log_level_sql.upper() == "DEBUG",
)

async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session: committed on success, rolled back on any error.

    A chat turn whose candidates all fail therefore leaves no stored user
    message behind.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def ensure_database_exists(raw_url: str) -> None:
    """Issue ``CREATE DATABASE`` on PostgreSQL when the target is missing.

    Other backends create their storage on first connect and are skipped.
    """
    url = make_url(raw_url)
    if url.get_backend_name() != "postgresql" or not url.database:
        return

    import asyncpg

    target = url.database
    maintenance = url.set(drivername="postgresql", database="postgres")
    try:
        conn = await asyncpg.connect(maintenance.render_as_string(hide_password=False))
    except (OSError, asyncpg.PostgresError) as exc:
        logger.warning("Cannot reach PostgreSQL to check database '%s': %s", target, exc)
        return

    try:
        found = await conn.fetchval("SELECT 1 FROM pg_database WHERE datname = $1", target)
        if found:
            return
        # Not allowed inside a transaction block.
        await conn.execute(f'CREATE DATABASE "{target}"')
        logger.info("Created database '%s'", target)
    except asyncpg.PostgresError as exc:
        logger.warning("Could not create database '%s': %s", target, exc)
    finally:
        await conn.close()
