"""User CRUD, feature grants and bans."""

import logging
import uuid
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tuitter.constants import BAN_TYPES, NUKED_MARKER
from tuitter.errors import NotFoundError, UnprocessableEntityError, ValidationError
from tuitter.models.user import User
from tuitter.services.authorization import DEFAULT_USER_FEATURES
from tuitter.services.password import hash_password
from tuitter.utils import now_utc

logger = logging.getLogger(__name__)

UNIQUE_FIELDS = ("tag", "username", "email")

BanHook = Callable[[AsyncSession, User], Awaitable[None]]

# Async callbacks run inside the ban transaction after a user is nuked.
nuke_hooks: list[BanHook] = []


async def _ensure_unique(db: AsyncSession, field: str, value: str, exclude_id: uuid.UUID | None = None) -> None:
    column = getattr(User, field)
    query = select(User.id).where(func.lower(column) == value.lower())
    if exclude_id is not None:
        query = query.where(User.id != exclude_id)
    if (await db.execute(query.limit(1))).first() is not None:
        raise ValidationError(
            f'The "{field}" is already in use.',
            f'Choose another "{field}" and try again.',
            key=field,
            error_location_code=f"MODEL:USER:VALIDATE_UNIQUE_{field.upper()}:ALREADY_EXISTS",
        )


def _unique_violation(e: IntegrityError) -> ValidationError:
    """Translate a unique-index violation into a ValidationError naming the field."""
    detail = str(e.orig).lower()
    key = next((field for field in UNIQUE_FIELDS if field in detail), None)
    return ValidationError(
        f'The "{key}" is already in use.' if key else "A unique value is already in use.",
        "Adjust the submitted data and try again.",
        key=key,
        error_location_code="MODEL:USER:UNIQUE_VIOLATION",
    )


async def _flush(db: AsyncSession) -> None:
    try:
        await db.flush()
    except IntegrityError as e:
        raise _unique_violation(e) from e


async def create(db: AsyncSession, data: dict[str, Any]) -> User:
    for field in UNIQUE_FIELDS:
        await _ensure_unique(db, field, data[field])

    user = User(
        tag=data["tag"],
        username=data["username"],
        email=data["email"],
        password=await hash_password(data["password"]),
        features=list(DEFAULT_USER_FEATURES),
    )
    db.add(user)
    await _flush(db)
    logger.info("User %s created (tag=%s)", user.id, user.tag)
    return user


async def _find_one(db: AsyncSession, column, value: Any, field: str) -> User:
    if field == "id":
        user = await db.get(User, value)
    else:
        result = await db.execute(select(User).where(func.lower(column) == str(value).lower()).limit(1))
        user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError(
            f'The "{field}" was not found in the system.',
            f'Check that the "{field}" is typed correctly.',
            key=field,
            error_location_code=f"MODEL:USER:FIND_ONE_BY_{field.upper()}:NOT_FOUND",
        )
    return user


async def find_by_id(db: AsyncSession, user_id: uuid.UUID) -> User:
    return await _find_one(db, User.id, user_id, "id")


async def find_by_tag(db: AsyncSession, tag: str) -> User:
    return await _find_one(db, User.tag, tag, "tag")


async def find_by_username(db: AsyncSession, username: str) -> User:
    return await _find_one(db, User.username, username, "username")


async def find_by_email(db: AsyncSession, email: str) -> User:
    return await _find_one(db, User.email, email, "email")


async def update(db: AsyncSession, user: User, data: dict[str, Any]) -> User:
    """Apply a filtered update; unique fields are re-checked only when they change."""
    for field in UNIQUE_FIELDS:
        if field in data and data[field].lower() != getattr(user, field).lower():
            await _ensure_unique(db, field, data[field], exclude_id=user.id)

    for key, value in data.items():
        if key == "password":
            value = await hash_password(value)
        setattr(user, key, value)

    user.updated_at = now_utc()
    await _flush(db)
    return user


async def add_features(db: AsyncSession, user: User, features: Iterable[str]) -> User:
    current = list(user.features)
    for feature in features:
        if feature not in current:
            current.append(feature)
    user.features = current
    user.updated_at = now_utc()
    await db.flush()
    return user


async def remove_features(db: AsyncSession, user: User, features: Iterable[str] | None = None) -> User:
    """Remove the given features, or every feature when none are given."""
    features = list(features or [])
    user.features = [f for f in user.features if f not in features] if features else []
    user.updated_at = now_utc()
    await db.flush()
    return user


async def ban(db: AsyncSession, user: User, ban_type: str) -> User:
    if NUKED_MARKER in user.features:
        raise UnprocessableEntityError(
            "This user is already permanently banned.",
            "Check that you are banning the right user.",
            error_location_code="MODEL:USER:BAN:USER_ALREADY_NUKED",
        )
    if ban_type not in BAN_TYPES:
        raise ValidationError(
            f'Unknown "ban_type": {ban_type}.',
            key="ban_type",
            error_location_code="MODEL:USER:BAN:INVALID_BAN_TYPE",
        )

    user.features = [NUKED_MARKER]
    user.updated_at = now_utc()
    await db.flush()
    for hook in nuke_hooks:
        await hook(db, user)
    logger.warning("User %s nuked", user.id)
    return user
