"""Status route — database version and connection usage."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tuitter.config import get_settings
from tuitter.db.pool import collect_stats
from tuitter.db.session import get_session_factory, read_session
from tuitter.utils import now_utc

router = APIRouter(prefix="/api/v1", tags=["status"])


@router.get("/status")
async def get_status(factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory)):
    async with read_session(factory) as db:
        conn = await db.connection()
        stats = await collect_stats(conn, get_settings().database_pool_size)

    return {
        "updated_at": now_utc(),
        "dependencies": {
            "database": {
                "version": stats.version,
                "max_connections": stats.max_connections,
                "opened_connections": stats.opened_connections,
            },
        },
    }
