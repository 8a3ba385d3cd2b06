"""User routes — signup, profile reads, profile updates and bans."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tuitter.db.session import get_db, get_session_factory, transaction
from tuitter.errors import ForbiddenError
from tuitter.schemas.user import UserBan, UserCreate, UserUpdate
from tuitter.services import user_service
from tuitter.services.authentication import RequestContext
from tuitter.services.authorization import authorization, can_request

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.post("", status_code=201)
async def create_user(
    payload: UserCreate,
    context: RequestContext = Depends(can_request("create:user")),
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    secure_input = authorization.filter_input(context.user, "create:user", payload.model_dump())

    async with transaction(factory) as db:
        new_user = await user_service.create(db, secure_input)

    return authorization.filter_output(new_user, "read:user", new_user)


@router.get("/{tag}")
async def get_user(
    tag: str,
    context: RequestContext = Depends(can_request("read:user")),
    db: AsyncSession = Depends(get_db),
):
    found = await user_service.find_by_tag(db, tag)
    return authorization.filter_output(context.user, "read:user", found)


@router.patch("/{tag}")
async def update_user(
    tag: str,
    payload: UserUpdate,
    context: RequestContext = Depends(can_request("update:user")),
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    """Update a profile; other users' profiles need update:user:others and only take public fields."""
    async with transaction(factory) as db:
        target = await user_service.find_by_tag(db, tag)

        if authorization.can(context.user, "update:user", target):
            feature = "update:user"
            secure_input = authorization.filter_input(context.user, feature, payload.changes(), target)
        elif authorization.can(context.user, "update:user:others"):
            feature = "update:user:others"
            secure_input = authorization.filter_input(context.user, feature, payload.changes())
        else:
            raise ForbiddenError(
                "You are not allowed to update another user.",
                'Check that you have the feature "update:user:others".',
                error_location_code="CONTROLLER:USERS:TAG:PATCH:USER_CANT_UPDATE_OTHER_USER",
            )

        updated = await user_service.update(db, target, secure_input)

    output_feature = "read:user:self" if feature == "update:user" else "read:user"
    return authorization.filter_output(context.user, output_feature, updated)


@router.delete("/{tag}")
async def ban_user(
    tag: str,
    payload: UserBan,
    context: RequestContext = Depends(can_request("ban:user")),
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    secure_input = authorization.filter_input(context.user, "ban:user", payload.model_dump())

    async with transaction(factory) as db:
        target = await user_service.find_by_tag(db, tag)
        banned = await user_service.ban(db, target, secure_input["ban_type"])

    logger.info("User %s banned by %s (%s)", banned.id, context.user.id, secure_input["ban_type"])
    return authorization.filter_output(context.user, "read:user", banned)
