"""FastAPI application factory — entry point for the API."""

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from tuitter import controller
from tuitter.config import get_settings
from tuitter.routers import sessions, status, tuits, user, users
from tuitter.utils import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    # Auto-create tables for SQLite (dev mode); PostgreSQL uses Alembic
    from tuitter.db.session import engine, pool_gauge
    from tuitter.models import Base

    settings = get_settings()
    if settings.database_url.startswith("sqlite"):
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    # Admission control: keep the pool gauge fresh off the request path
    gauge_task = asyncio.create_task(pool_gauge.run())

    yield

    gauge_task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await gauge_task
    await engine.dispose()


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.debug)

    app = FastAPI(
        title=settings.app_name,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url=None,
    )
    app.state.settings = settings

    # --- Middleware & error handlers ---
    controller.register(app)

    # --- Routers ---
    app.include_router(status.router)
    app.include_router(sessions.router)
    app.include_router(users.router)
    app.include_router(user.router)
    app.include_router(tuits.router)

    return app


app = create_app()
