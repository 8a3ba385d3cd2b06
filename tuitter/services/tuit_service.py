"""Tuit persistence, counters and ranked reads."""

import logging
import uuid
from collections.abc import Sequence

from sqlalchemy import case, exists, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tuitter.config import get_settings
from tuitter.constants import COUNTER_COLUMNS, TUIT_STATUS_DISABLED, TUIT_STATUS_PUBLISHED
from tuitter.errors import NotFoundError, ValidationError
from tuitter.models.feedback import View
from tuitter.models.tuit import Tuit
from tuitter.services.relevance import rank
from tuitter.utils import now_utc

logger = logging.getLogger(__name__)


async def _ensure_reference(db: AsyncSession, tuit_id: uuid.UUID, key: str) -> None:
    found = (await db.execute(select(Tuit.id).where(Tuit.id == tuit_id))).first()
    if found is None:
        label = "comment on" if key == "parent_id" else "quote"
        raise ValidationError(
            f"You are trying to {label} a tuit that does not exist.",
            f'Use a "{key}" that points to existing content.',
            key=key,
            error_location_code=f"MODEL:TUIT:CHECK_IF_{key.upper()}_EXISTS:NOT_FOUND",
        )


async def create(
    db: AsyncSession,
    owner_id: uuid.UUID,
    body: str,
    parent_id: uuid.UUID | None = None,
    quote_id: uuid.UUID | None = None,
) -> Tuit:
    if parent_id is not None:
        await _ensure_reference(db, parent_id, "parent_id")
    if quote_id is not None:
        await _ensure_reference(db, quote_id, "quote_id")

    tuit = Tuit(owner_id=owner_id, body=body, parent_id=parent_id, quote_id=quote_id)
    db.add(tuit)
    await db.flush()
    return tuit


async def find_by_id(db: AsyncSession, tuit_id: uuid.UUID, *, for_update: bool = False) -> Tuit:
    query = select(Tuit).where(Tuit.id == tuit_id)
    if for_update:
        query = query.with_for_update()
    tuit = (await db.execute(query)).scalar_one_or_none()
    if tuit is None:
        raise NotFoundError(
            f'The id "{tuit_id}" was not found in the system.',
            'Check that the "id" is typed correctly.',
            key="id",
            error_location_code="MODEL:TUIT:FIND_BY_ID:NOT_FOUND",
        )
    return tuit


async def disable(db: AsyncSession, tuit: Tuit) -> Tuit:
    """One-way transition to disabled; callers reject already-disabled tuits."""
    tuit.status = TUIT_STATUS_DISABLED
    tuit.updated_at = now_utc()
    await db.flush()
    logger.info("Tuit %s disabled", tuit.id)
    return tuit


async def apply_counter(db: AsyncSession, tuit_id: uuid.UUID, column: str, delta: int) -> None:
    """Relative counter update in SQL; a decrement never goes below zero."""
    if column not in COUNTER_COLUMNS:
        raise ValueError(f"Unknown counter column: {column}")
    counter = getattr(Tuit, column)
    value = counter + delta if delta >= 0 else case((counter + delta < 0, 0), else_=counter + delta)
    await db.execute(
        update(Tuit)
        .where(Tuit.id == tuit_id)
        .values({column: value, "updated_at": now_utc()})
        .execution_options(synchronize_session=False)
    )


async def get_relevant_tuits(db: AsyncSession, user_id: uuid.UUID | None) -> list[Tuit]:
    """Root feed: newest published root tuits the user has not viewed, ranked."""
    settings = get_settings()
    query = select(Tuit).where(Tuit.parent_id.is_(None), Tuit.status == TUIT_STATUS_PUBLISHED)
    if user_id is not None:
        viewed = exists().where(View.owner_id == user_id, View.tuit_id == Tuit.id)
        query = query.where(~viewed)
    query = query.order_by(Tuit.created_at.desc(), Tuit.id).limit(settings.feed_candidate_limit)

    candidates = (await db.execute(query)).scalars().all()
    return rank(candidates, settings.feed_size, settings.relevance_weights)


async def get_comments(
    db: AsyncSession,
    parent_id: uuid.UUID,
    exclude_ids: Sequence[uuid.UUID] = (),
) -> list[Tuit]:
    """Ranked page of comments under ``parent_id``, skipping ids the client already has."""
    settings = get_settings()
    await find_by_id(db, parent_id)

    query = select(Tuit).where(Tuit.parent_id == parent_id)
    if exclude_ids:
        query = query.where(Tuit.id.not_in(list(exclude_ids)))
    query = query.order_by(Tuit.created_at.desc(), Tuit.id).limit(settings.comments_candidate_limit)

    candidates = (await db.execute(query)).scalars().all()
    return rank(candidates, settings.comments_size, settings.relevance_weights)
