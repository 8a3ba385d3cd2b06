"""Operator CLI for Tuitter using Typer."""

import asyncio
import logging
from typing import Annotated, Optional

import typer
from dotenv import load_dotenv
from rich.console import Console

from tuitter.errors import BaseError
from tuitter.utils import setup_logging

# Load .env before settings are first read
load_dotenv(override=False)

# CLI styles
STYLE_HEADER = "bold blue"
STYLE_SUCCESS = "bold green"
STYLE_WARNING = "bold yellow"
STYLE_ERROR = "bold red"

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="tuitter",
    help="Tuitter - operator commands for the API database.",
    add_completion=False,
)
console = Console()


def _run(coro):
    try:
        return asyncio.run(coro)
    except BaseError as e:
        console.print(f"[{STYLE_ERROR}]{e.message}[/{STYLE_ERROR}] {e.action}")
        raise typer.Exit(1)


async def _dispose() -> None:
    from tuitter.db.session import engine
    await engine.dispose()


async def _init_db() -> None:
    from tuitter.db.session import engine
    from tuitter.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()


async def _change_features(tag: str, features: list[str], grant: bool) -> list[str]:
    from tuitter.db.session import get_session_factory, transaction
    from tuitter.services import user_service
    from tuitter.services.authorization import authorization

    for feature in features:
        authorization.validate_feature(feature)

    try:
        async with transaction(get_session_factory()) as db:
            target = await user_service.find_by_tag(db, tag)
            if grant:
                updated = await user_service.add_features(db, target, features)
            else:
                updated = await user_service.remove_features(db, target, features)
            return list(updated.features)
    finally:
        await _dispose()


async def _status():
    from tuitter.config import get_settings
    from tuitter.db.pool import collect_stats
    from tuitter.db.session import get_session_factory

    try:
        async with get_session_factory()() as db:
            conn = await db.connection()
            return await collect_stats(conn, get_settings().database_pool_size)
    finally:
        await _dispose()


@app.command("init-db")
def init_db(
    verbose: Annotated[bool, typer.Option(help="Verbose output")] = False,
):
    """
    Create all tables directly from the models.

    Meant for SQLite development databases; PostgreSQL uses Alembic.
    """
    setup_logging(verbose)
    console.print(f"[{STYLE_HEADER}]Creating tables...[/{STYLE_HEADER}]")
    _run(_init_db())
    console.print(f"[{STYLE_SUCCESS}]Database ready.[/{STYLE_SUCCESS}]")


@app.command()
def grant(
    tag: Annotated[str, typer.Argument(help="Tag of the user")],
    features: Annotated[list[str], typer.Argument(help="Features to grant")],
    verbose: Annotated[bool, typer.Option(help="Verbose output")] = False,
):
    """Grant features to a user (e.g. update:tuit:others, ban:user)."""
    setup_logging(verbose)
    current = _run(_change_features(tag, features, grant=True))
    console.print(f"[{STYLE_SUCCESS}]Granted to {tag}:[/{STYLE_SUCCESS}] {', '.join(features)}")
    console.print(f"Features: {', '.join(current) or '(none)'}")


@app.command()
def revoke(
    tag: Annotated[str, typer.Argument(help="Tag of the user")],
    features: Annotated[Optional[list[str]], typer.Argument(help="Features to revoke; all when omitted")] = None,
    verbose: Annotated[bool, typer.Option(help="Verbose output")] = False,
):
    """Revoke features from a user, or every feature when none are given."""
    setup_logging(verbose)
    if not features:
        console.print(f"[{STYLE_WARNING}]Revoking every feature from {tag}.[/{STYLE_WARNING}]")
    current = _run(_change_features(tag, features or [], grant=False))
    console.print(f"[{STYLE_SUCCESS}]Revoked from {tag}.[/{STYLE_SUCCESS}]")
    console.print(f"Features: {', '.join(current) or '(none)'}")


@app.command()
def status(
    verbose: Annotated[bool, typer.Option(help="Verbose output")] = False,
):
    """Show database version and connection usage."""
    setup_logging(verbose)
    stats = _run(_status())
    console.print(f"[{STYLE_HEADER}]Database[/{STYLE_HEADER}]")
    console.print(f"  version:              {stats.version}")
    console.print(f"  max connections:      {stats.max_connections}")
    console.print(f"  reserved connections: {stats.reserved_connections}")
    console.print(f"  opened connections:   {stats.opened_connections}")


if __name__ == "__main__":
    app()
