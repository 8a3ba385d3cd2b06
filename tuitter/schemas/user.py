"""User-related Pydantic schemas."""

from typing import Literal

from pydantic import BaseModel, model_validator

from tuitter.schemas.fields import Description, Email, Password, Picture, Tag, Username


class UserCreate(BaseModel):
    tag: Tag
    username: Username
    email: Email
    password: Password


class UserUpdate(BaseModel):
    tag: Tag | None = None
    username: Username | None = None
    email: Email | None = None
    password: Password | None = None
    description: Description | None = None
    picture: Picture | None = None

    @model_validator(mode="after")
    def at_least_one_key(self) -> "UserUpdate":
        if not self.changes():
            raise ValueError("The submitted object must have at least one key.")
        return self

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True, exclude_none=True)


class UserBan(BaseModel):
    ban_type: Literal["nuke"]
