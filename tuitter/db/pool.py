"""Connection-pool admission control.

A background task refreshes a gauge of database connection usage; the query
path only reads the cached verdict. When the database is close to its
connection ceiling, transactions on a serverless runtime hand their
connection back for closing instead of returning it to the pool.
"""

import asyncio
import logging
import time
from dataclasses import dataclass

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectionStats:
    version: str
    max_connections: int
    reserved_connections: int
    opened_connections: int


async def collect_stats(conn: AsyncConnection, pool_size: int) -> ConnectionStats:
    """Read connection limits and usage from the database behind ``conn``."""
    if conn.dialect.name == "postgresql":
        version = (await conn.execute(text("SHOW server_version"))).scalar_one()
        max_connections = (await conn.execute(text("SHOW max_connections"))).scalar_one()
        reserved = (await conn.execute(text("SHOW superuser_reserved_connections"))).scalar_one()
        opened = (
            await conn.execute(
                text("SELECT count(*)::int FROM pg_stat_activity WHERE datname = current_database()")
            )
        ).scalar_one()
        return ConnectionStats(
            version=str(version),
            max_connections=int(max_connections),
            reserved_connections=int(reserved),
            opened_connections=int(opened),
        )

    # SQLite has no server-side limit; the local pool is the ceiling.
    version = (await conn.execute(text("SELECT sqlite_version()"))).scalar_one()
    pool = conn.engine.pool
    checked_out = pool.checkedout() if hasattr(pool, "checkedout") else 1
    return ConnectionStats(
        version=str(version),
        max_connections=pool_size,
        reserved_connections=0,
        opened_connections=int(checked_out),
    )


class PoolGauge:
    """Periodically refreshed view of connection usage feeding a shed decision."""

    def __init__(
        self,
        engine: AsyncEngine,
        pool_size: int,
        max_age: float,
        tolerance: float,
        serverless: bool = False,
    ):
        self._engine = engine
        self._pool_size = pool_size
        self._max_age = max_age
        self._tolerance = tolerance
        self._serverless = serverless
        self._stats: ConnectionStats | None = None
        self._refreshed_at: float | None = None
        self._unreachable = False

    @property
    def stats(self) -> ConnectionStats | None:
        return self._stats

    def is_stale(self) -> bool:
        if self._refreshed_at is None:
            return True
        return time.monotonic() - self._refreshed_at > self._max_age

    async def refresh(self) -> ConnectionStats | None:
        try:
            async with self._engine.connect() as conn:
                self._stats = await collect_stats(conn, self._pool_size)
        except (SQLAlchemyError, OSError) as e:
            logger.warning("Pool gauge refresh failed: %s", e)
            self._unreachable = True
            return None

        self._unreachable = False
        self._refreshed_at = time.monotonic()
        logger.debug("Pool gauge refreshed: %s", self._stats)
        return self._stats

    def should_shed(self) -> bool:
        """True when connections should be closed rather than pooled; serverless runtimes only."""
        if not self._serverless:
            return False
        if self._unreachable:
            return True
        stats = self._stats
        if stats is None:
            return False
        budget = (stats.max_connections - stats.reserved_connections) * self._tolerance
        return stats.opened_connections > budget

    async def run(self) -> None:
        """Refresh forever; started and cancelled by the app lifespan."""
        while True:
            await self.refresh()
            await asyncio.sleep(self._max_age)
