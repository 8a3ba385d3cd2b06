"""Request-context dependency: session cookie -> session -> user, or anonymous."""

import logging
from dataclasses import dataclass, field

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tuitter.constants import COOKIE_NAME, SESSION_TOKEN_LENGTH
from tuitter.db.session import get_session_factory, read_session
from tuitter.errors import ForbiddenError, NotFoundError, UnauthorizedError, ValidationError
from tuitter.models.session import Session
from tuitter.models.user import User
from tuitter.services import session_service, user_service
from tuitter.services.authorization import ANONYMOUS_FEATURES, authorization

logger = logging.getLogger(__name__)


@dataclass
class AnonymousUser:
    id: None = None
    features: list[str] = field(default_factory=lambda: list(ANONYMOUS_FEATURES))


@dataclass
class RequestContext:
    user: User | AnonymousUser
    session: Session | None = None
    request_id: str | None = None
    client_ip: str | None = None


def _validate_token(token: str) -> str:
    token = token.strip()
    if len(token) != SESSION_TOKEN_LENGTH or not token.isalnum():
        raise ValidationError(
            f'"{COOKIE_NAME}" must be {SESSION_TOKEN_LENGTH} alphanumeric characters.',
            key=COOKIE_NAME,
            error_location_code="MODEL:AUTHENTICATION:VALIDATE_TOKEN:INVALID",
        )
    return token


def _no_active_session() -> UnauthorizedError:
    return UnauthorizedError(
        "User has no active session.",
        "Check that this user is logged in.",
        error_location_code="MODEL:AUTHENTICATION:INJECT_AUTHENTICATED_USER:NO_ACTIVE_SESSION",
    )


async def get_request_context(
    request: Request,
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> RequestContext:
    """FastAPI dependency: resolve the session cookie to a user, or fall back to anonymous.

    Lookups run on their own session, closed before the route body starts.
    """
    context = RequestContext(
        user=AnonymousUser(),
        request_id=getattr(request.state, "request_id", None),
        client_ip=getattr(request.state, "client_ip", None),
    )

    raw_token = request.cookies.get(COOKIE_NAME)
    if raw_token:
        token = _validate_token(raw_token)
        async with read_session(factory) as db:
            session = await session_service.find_by_token(db, token)
            if session is None:
                raise _no_active_session()
            try:
                user = await user_service.find_by_id(db, session.user_id)
            except NotFoundError as e:
                raise _no_active_session() from e

        if not authorization.can(user, "read:session"):
            raise ForbiddenError(
                "User cannot perform this operation.",
                "Check that this user has an active account.",
                error_location_code="MODEL:AUTHENTICATION:INJECT_AUTHENTICATED_USER:USER_CANT_READ_SESSION",
            )
        context.user = user
        context.session = session

    request.state.context = context
    return context
