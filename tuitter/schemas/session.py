"""Session-related Pydantic schemas."""

from pydantic import BaseModel

from tuitter.schemas.fields import Email, Password


class SessionCreate(BaseModel):
    email: Email
    password: Password
