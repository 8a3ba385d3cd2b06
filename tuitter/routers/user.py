"""Current-user route with sliding session renewal."""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tuitter.db.session import get_session_factory, transaction
from tuitter.services import session_service
from tuitter.services.authentication import RequestContext
from tuitter.services.authorization import authorization, can_request

router = APIRouter(prefix="/api/v1/user", tags=["user"])


@router.get("")
async def get_current_user(
    response: Response,
    context: RequestContext = Depends(can_request("read:session")),
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    if session_service.needs_renewal(context.session):
        async with transaction(factory) as db:
            context.session = await session_service.renew(db, context.session.id)
        session_service.set_session_cookie(response, context.session.token)

    return authorization.filter_output(context.user, "read:user:self", context.user)
