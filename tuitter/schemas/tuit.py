"""Tuit and feedback Pydantic schemas."""

import uuid
from typing import Literal

from pydantic import BaseModel

from tuitter.schemas.fields import Body


class TuitCreate(BaseModel):
    body: Body
    parent_id: uuid.UUID | None = None
    quote_id: uuid.UUID | None = None


class FeedbackCreate(BaseModel):
    feedback_type: Literal["view", "like", "retuit", "bookmark"]


class CommentsQuery(BaseModel):
    comments_ids: list[uuid.UUID] = []
