"""Async database engine, session factory, transactions and FastAPI dependencies.

Supports both PostgreSQL (production) and SQLite (local dev, tests).
"""

import logging
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import Depends
from sqlalchemy import exc as sa_exc
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from tuitter.config import get_settings
from tuitter.db.pool import PoolGauge
from tuitter.errors import ServiceError

logger = logging.getLogger(__name__)

settings = get_settings()

db_url = settings.database_url

# SQLite: swap driver to aiosqlite and ensure the data directory exists
if db_url.startswith("sqlite"):
    db_url = db_url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    db_path = db_url.split("///")[-1]
    if db_path:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    engine = create_async_engine(db_url, echo=settings.debug, connect_args={"check_same_thread": False})
else:
    engine = create_async_engine(
        db_url,
        echo=settings.debug,
        pool_pre_ping=True,
        pool_size=settings.database_pool_size,
        max_overflow=0,
        pool_timeout=settings.database_pool_timeout,
    )

async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

pool_gauge = PoolGauge(
    engine,
    pool_size=settings.database_pool_size,
    max_age=settings.pool_gauge_max_age,
    tolerance=settings.max_connections_tolerance,
    serverless=settings.serverless,
)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """FastAPI dependency returning the session factory (overridden in tests)."""
    return async_session_factory


def _pool_exhausted(e: sa_exc.TimeoutError) -> ServiceError:
    logger.warning("Connection pool exhausted: %s", e)
    return ServiceError(
        "Database connection pool is exhausted.",
        "Try again in a few moments.",
        error_location_code="INFRA:DATABASE:POOL_TIMEOUT",
    )


@asynccontextmanager
async def read_session(
    factory: async_sessionmaker[AsyncSession] | None = None,
) -> AsyncIterator[AsyncSession]:
    """Short-lived session for lookups; its connection is released on exit."""
    factory = factory or async_session_factory

    async with factory() as session:
        try:
            yield session
        except sa_exc.TimeoutError as e:
            raise _pool_exhausted(e) from e


async def get_db(
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields an async database session for reads."""
    async with read_session(factory) as session:
        # Check out now so an exhausted pool is reported before the route runs
        await session.connection()
        yield session


@asynccontextmanager
async def transaction(
    factory: async_sessionmaker[AsyncSession] | None = None,
    gauge: PoolGauge | None = None,
) -> AsyncIterator[AsyncSession]:
    """Run a unit of work on one dedicated connection.

    Commits on success and rolls back on any exception, cancellation
    included. The connection is always released; when the pool gauge reports
    pressure it is invalidated instead of being returned to the pool.
    """
    factory = factory or async_session_factory
    gauge = gauge or pool_gauge

    try:
        async with factory.kw["bind"].connect() as conn:
            try:
                async with factory(bind=conn) as session:
                    async with session.begin():
                        yield session
            except BaseException:
                logger.debug("Transaction rolled back")
                raise
            finally:
                if gauge.should_shed():
                    logger.info("Pool under pressure, closing connection instead of pooling it")
                    await conn.invalidate()
    except sa_exc.TimeoutError as e:
        raise _pool_exhausted(e) from e
