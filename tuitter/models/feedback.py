"""Feedback models — one table per kind, at most one row per (owner, tuit)."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from tuitter.utils import now_utc
from .base import Base


class FeedbackMixin:
    """Columns shared by the view/like/retuit/bookmark tables."""

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc)

    @declared_attr
    def owner_id(cls) -> Mapped[uuid.UUID]:
        return mapped_column(ForeignKey("users.id"), nullable=False)

    @declared_attr
    def tuit_id(cls) -> Mapped[uuid.UUID]:
        return mapped_column(ForeignKey("tuits.id"), nullable=False, index=True)

    @declared_attr.directive
    def __table_args__(cls) -> tuple:
        return (UniqueConstraint("owner_id", "tuit_id", name=f"uq_{cls.__tablename__}_owner_tuit"),)


class View(FeedbackMixin, Base):
    __tablename__ = "views"


class Like(FeedbackMixin, Base):
    __tablename__ = "likes"


class Retuit(FeedbackMixin, Base):
    __tablename__ = "retuits"


class Bookmark(FeedbackMixin, Base):
    __tablename__ = "bookmarks"
