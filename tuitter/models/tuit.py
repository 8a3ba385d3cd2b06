"""Tuit model — a post, reply (parent_id) or quote (quote_id) with engagement counters."""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tuitter.constants import TUIT_BODY_MAX_LENGTH, TUIT_STATUS_DISABLED, TUIT_STATUS_PUBLISHED
from tuitter.utils import now_utc
from .base import Base


class Tuit(Base):
    __tablename__ = "tuits"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    parent_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("tuits.id"), nullable=True)
    quote_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("tuits.id"), nullable=True)
    body: Mapped[str] = mapped_column(String(TUIT_BODY_MAX_LENGTH), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=TUIT_STATUS_PUBLISHED)
    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    likes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    retuits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    bookmarks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    comments: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    quotes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        CheckConstraint(
            f"status IN ('{TUIT_STATUS_PUBLISHED}', '{TUIT_STATUS_DISABLED}')",
            name="ck_tuits_status",
        ),
        CheckConstraint("views >= 0", name="ck_tuits_views_non_negative"),
        CheckConstraint("likes >= 0", name="ck_tuits_likes_non_negative"),
        CheckConstraint("retuits >= 0", name="ck_tuits_retuits_non_negative"),
        CheckConstraint("bookmarks >= 0", name="ck_tuits_bookmarks_non_negative"),
        CheckConstraint("comments >= 0", name="ck_tuits_comments_non_negative"),
        CheckConstraint("quotes >= 0", name="ck_tuits_quotes_non_negative"),
        Index("ix_tuits_parent_created", "parent_id", "created_at"),
    )

    owner: Mapped["User"] = relationship(back_populates="tuits")
