"""Feedback transactions: toggled view/like/retuit/bookmark rows and appended comments/quotes.

A toggle mutates a feedback row and the matching tuit counter in one
transaction. The tuit row is locked first so concurrent toggles on the same
tuit serialize; the (owner_id, tuit_id) unique constraint backstops the
isolation level and surfaces as a retryable conflict.
"""

import enum
import logging
import uuid

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tuitter.config import get_settings
from tuitter.db.session import transaction
from tuitter.errors import ConflictError
from tuitter.models.feedback import Bookmark, FeedbackMixin, Like, Retuit, View
from tuitter.models.tuit import Tuit
from tuitter.services import tuit_service

logger = logging.getLogger(__name__)

# SQLSTATE codes for serialization failure and deadlock
RETRYABLE_SQLSTATES = ("40001", "40P01")


class FeedbackKind(str, enum.Enum):
    VIEW = "view"
    LIKE = "like"
    RETUIT = "retuit"
    BOOKMARK = "bookmark"

    @property
    def model(self) -> type[FeedbackMixin]:
        return _MODELS[self]

    @property
    def counter(self) -> str:
        return _MODELS[self].__tablename__

    @property
    def toggles(self) -> bool:
        return self is not FeedbackKind.VIEW


_MODELS: dict[FeedbackKind, type[FeedbackMixin]] = {
    FeedbackKind.VIEW: View,
    FeedbackKind.LIKE: Like,
    FeedbackKind.RETUIT: Retuit,
    FeedbackKind.BOOKMARK: Bookmark,
}


async def toggle_feedback(
    db: AsyncSession,
    kind: FeedbackKind,
    user_id: uuid.UUID,
    tuit_id: uuid.UUID,
) -> FeedbackMixin | None:
    """
    Insert the feedback row if absent, delete it if present, and move the counter.

    Returns the inserted or deleted row, or None for a repeat view.
    Must run inside a transaction.
    """
    await tuit_service.find_by_id(db, tuit_id, for_update=True)

    model = kind.model
    result = await db.execute(select(model).where(model.owner_id == user_id, model.tuit_id == tuit_id))
    existing = result.scalar_one_or_none()

    if existing is not None and not kind.toggles:
        return None

    if existing is None:
        row = model(owner_id=user_id, tuit_id=tuit_id)
        db.add(row)
        await db.flush()
        delta = 1
    else:
        row = existing
        await db.execute(delete(model).where(model.id == existing.id))
        db.expunge(existing)
        delta = -1

    await tuit_service.apply_counter(db, tuit_id, kind.counter, delta)
    return row


async def append_feedback(
    db: AsyncSession,
    owner_id: uuid.UUID,
    body: str,
    parent_id: uuid.UUID | None = None,
    quote_id: uuid.UUID | None = None,
) -> Tuit:
    """Create a tuit and bump the parent's comments and/or the quoted tuit's quotes."""
    tuit = await tuit_service.create(db, owner_id, body, parent_id=parent_id, quote_id=quote_id)
    if parent_id is not None:
        await tuit_service.apply_counter(db, parent_id, "comments", 1)
    if quote_id is not None:
        await tuit_service.apply_counter(db, quote_id, "quotes", 1)
    return tuit


def _is_retryable(e: Exception) -> bool:
    if isinstance(e, IntegrityError):
        return True
    if isinstance(e, OperationalError):
        sqlstate = getattr(e.orig, "sqlstate", None) or getattr(e.orig, "pgcode", None)
        return sqlstate in RETRYABLE_SQLSTATES or "locked" in str(e.orig).lower()
    return False


async def perform_feedback_action(
    session_factory: async_sessionmaker[AsyncSession],
    kind: FeedbackKind,
    user_id: uuid.UUID,
    tuit_id: uuid.UUID,
) -> FeedbackMixin | None:
    """Run ``toggle_feedback`` in its own transaction, retrying lost races."""
    attempts = get_settings().feedback_max_attempts
    for attempt in range(1, attempts + 1):
        try:
            async with transaction(session_factory) as db:
                return await toggle_feedback(db, kind, user_id, tuit_id)
        except (IntegrityError, OperationalError) as e:
            if not _is_retryable(e):
                raise
            logger.info(
                "Feedback %s on tuit %s conflicted (attempt %d/%d): %s",
                kind.value, tuit_id, attempt, attempts, e.orig,
            )

    raise ConflictError(
        "The tuit was modified concurrently.",
        "Retry the request.",
        error_location_code="MODEL:TUIT:PERFORM_FEEDBACK_ACTION:CONFLICT",
        context={"kind": kind.value, "tuit_id": str(tuit_id)},
    )
