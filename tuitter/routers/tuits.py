"""Tuit routes — feed, posting, disabling, feedback and comment pages."""

import logging
import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tuitter.constants import TUIT_STATUS_DISABLED
from tuitter.db.session import get_db, get_session_factory, transaction
from tuitter.errors import ForbiddenError, UnprocessableEntityError
from tuitter.schemas.tuit import CommentsQuery, FeedbackCreate, TuitCreate
from tuitter.services import tuit_service
from tuitter.services.authentication import RequestContext
from tuitter.services.authorization import authorization, can_request
from tuitter.services.feedback_service import FeedbackKind, append_feedback, perform_feedback_action

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/tuits", tags=["tuits"])


def _project(context: RequestContext, tuits) -> list[dict]:
    return [authorization.filter_output(context.user, "read:tuit", tuit) for tuit in tuits]


@router.get("")
async def get_feed(
    context: RequestContext = Depends(can_request("read:tuit:list")),
    db: AsyncSession = Depends(get_db),
):
    """Ranked root tuits the user has not viewed yet."""
    tuits = await tuit_service.get_relevant_tuits(db, context.user.id)
    return _project(context, tuits)


@router.post("", status_code=201)
async def create_tuit(
    payload: TuitCreate,
    context: RequestContext = Depends(can_request("create:tuit")),
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    """Post a tuit; ``parent_id`` makes it a comment and ``quote_id`` a quote."""
    secure_input = authorization.filter_input(context.user, "create:tuit", payload.model_dump())

    async with transaction(factory) as db:
        if secure_input.get("parent_id") or secure_input.get("quote_id"):
            tuit = await append_feedback(db, context.user.id, **secure_input)
        else:
            tuit = await tuit_service.create(db, context.user.id, secure_input["body"])

    return authorization.filter_output(context.user, "read:tuit", tuit)


@router.get("/{tuit_id}")
async def get_tuit(
    tuit_id: uuid.UUID,
    context: RequestContext = Depends(can_request("read:tuit")),
    db: AsyncSession = Depends(get_db),
):
    tuit = await tuit_service.find_by_id(db, tuit_id)
    return authorization.filter_output(context.user, "read:tuit", tuit)


@router.delete("/{tuit_id}")
async def disable_tuit(
    tuit_id: uuid.UUID,
    context: RequestContext = Depends(can_request("update:tuit")),
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    async with transaction(factory) as db:
        target = await tuit_service.find_by_id(db, tuit_id, for_update=True)

        if target.status == TUIT_STATUS_DISABLED:
            raise UnprocessableEntityError(
                "This tuit is already disabled.",
                "Check that you are disabling the right tuit.",
                error_location_code="CONTROLLER:TUITS:TUIT_ID:DELETE:TUIT_ALREADY_DISABLED",
            )
        if not authorization.can(context.user, "update:tuit", target):
            raise ForbiddenError(
                "You are not allowed to update another user's tuit.",
                'Check that you have the feature "update:tuit:others".',
                error_location_code="CONTROLLER:TUITS:DELETE:USER_CANT_UPDATE_TUIT_FROM_OTHER_USER",
            )

        disabled = await tuit_service.disable(db, target)

    return authorization.filter_output(context.user, "read:tuit", disabled)


@router.post("/{tuit_id}/feedback", status_code=201)
async def create_feedback(
    tuit_id: uuid.UUID,
    payload: FeedbackCreate,
    context: RequestContext = Depends(can_request("create:tuit:feedback")),
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    """Toggle a view/like/retuit/bookmark; a repeat view answers ``null``."""
    secure_input = authorization.filter_input(context.user, "create:tuit:feedback", payload.model_dump())
    kind = FeedbackKind(secure_input["feedback_type"])

    row = await perform_feedback_action(factory, kind, context.user.id, tuit_id)
    if row is None:
        return None
    return authorization.filter_output(context.user, "create:tuit:feedback", row)


@router.post("/{tuit_id}/comments")
async def get_comments(
    tuit_id: uuid.UUID,
    payload: CommentsQuery | None = None,
    context: RequestContext = Depends(can_request("read:tuit:list")),
    db: AsyncSession = Depends(get_db),
):
    """Next ranked page of comments, excluding ``comments_ids`` already shown."""
    exclude = payload.comments_ids if payload else []
    tuits = await tuit_service.get_comments(db, tuit_id, exclude)
    return _project(context, tuits)
