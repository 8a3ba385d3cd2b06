"""Session lifecycle — opaque tokens stored server-side, carried in a cookie."""

import logging
import secrets
import uuid
from datetime import datetime, timedelta

from fastapi import Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tuitter.config import get_settings
from tuitter.constants import COOKIE_NAME, SESSION_TOKEN_BYTES
from tuitter.errors import NotFoundError
from tuitter.models.session import Session
from tuitter.utils import as_utc, now_utc

logger = logging.getLogger(__name__)


def _expiration() -> datetime:
    return now_utc() + timedelta(days=get_settings().session_expiration_days)


def generate_token() -> str:
    return secrets.token_hex(SESSION_TOKEN_BYTES)


async def create(db: AsyncSession, user_id: uuid.UUID) -> Session:
    session = Session(user_id=user_id, token=generate_token(), expires_at=_expiration())
    db.add(session)
    await db.flush()
    logger.info("Session %s created for user %s", session.id, user_id)
    return session


async def find_by_token(db: AsyncSession, token: str) -> Session | None:
    """Return the session for ``token`` if it exists and has not expired."""
    result = await db.execute(
        select(Session).where(Session.token == token, Session.expires_at > now_utc())
    )
    return result.scalar_one_or_none()


async def find_by_id(db: AsyncSession, session_id: uuid.UUID) -> Session:
    session = await db.get(Session, session_id)
    if session is None:
        raise NotFoundError(
            "Session not found.",
            error_location_code="MODEL:SESSION:FIND_BY_ID:NOT_FOUND",
        )
    return session


async def renew(db: AsyncSession, session_id: uuid.UUID) -> Session:
    session = await find_by_id(db, session_id)
    session.expires_at = _expiration()
    session.updated_at = now_utc()
    await db.flush()
    return session


async def expire_by_id(db: AsyncSession, session_id: uuid.UUID) -> Session:
    """Expire a session by moving its expiry before its creation."""
    session = await find_by_id(db, session_id)
    session.expires_at = as_utc(session.created_at) - timedelta(days=1)
    session.updated_at = now_utc()
    await db.flush()
    logger.info("Session %s expired", session.id)
    return session


def needs_renewal(session: Session) -> bool:
    remaining = as_utc(session.expires_at) - now_utc()
    return remaining < timedelta(days=get_settings().session_renewal_threshold_days)


def set_session_cookie(response: Response, token: str) -> None:
    """Set the session token as an HTTP-only cookie on the response."""
    settings = get_settings()
    response.set_cookie(
        key=COOKIE_NAME,
        value=token,
        httponly=True,
        secure=not settings.debug,
        samesite="lax",
        max_age=settings.session_expiration_days * 86400,
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(key=COOKIE_NAME, path="/")
