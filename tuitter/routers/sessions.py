"""Session routes — login and logout."""

import logging

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tuitter.db.session import get_session_factory, transaction
from tuitter.errors import ForbiddenError, NotFoundError, UnauthorizedError
from tuitter.schemas.session import SessionCreate
from tuitter.services import session_service, user_service
from tuitter.services.authentication import RequestContext
from tuitter.services.authorization import authorization, can_request
from tuitter.services.password import compare_passwords

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/sessions", tags=["sessions"])


@router.post("", status_code=201)
async def create_session(
    payload: SessionCreate,
    response: Response,
    context: RequestContext = Depends(can_request("create:session")),
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    """Log in with email and password; sets the session cookie."""
    secure_input = authorization.filter_input(context.user, "create:session", payload.model_dump())

    async with transaction(factory) as db:
        try:
            stored_user = await user_service.find_by_email(db, secure_input["email"])
            await compare_passwords(secure_input["password"], stored_user.password)
        except (NotFoundError, UnauthorizedError) as e:
            raise UnauthorizedError(
                "The submitted data does not match.",
                "Check that the submitted data is correct.",
                error_location_code="CONTROLLER:SESSIONS:POST_HANDLER:DATA_MISMATCH",
            ) from e

        if not authorization.can(stored_user, "create:session"):
            raise ForbiddenError(
                "You are not allowed to log in.",
                'Check that this user has the feature "create:session".',
                error_location_code="CONTROLLER:SESSIONS:POST_HANDLER:CAN_NOT_CREATE_SESSION",
            )

        session = await session_service.create(db, stored_user.id)

    session_service.set_session_cookie(response, session.token)
    return authorization.filter_output(stored_user, "create:session", session)


@router.delete("")
async def delete_session(
    response: Response,
    context: RequestContext = Depends(can_request("read:session")),
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    """Log out: expire the current session and clear the cookie."""
    async with transaction(factory) as db:
        expired = await session_service.expire_by_id(db, context.session.id)

    session_service.clear_session_cookie(response)
    return authorization.filter_output(context.user, "read:session", expired)
