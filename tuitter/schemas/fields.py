"""Annotated field types shared by the request schemas."""

from typing import Annotated

from pydantic import AfterValidator, AnyHttpUrl, BeforeValidator, EmailStr, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from tuitter.constants import DESCRIPTION_MAX_LENGTH, RESERVED_NAME_PREFIXES, RESERVED_NAMES, TUIT_BODY_MAX_LENGTH
from tuitter.utils import is_invisible, strip_trailing_invisible

_email = TypeAdapter(EmailStr)
_http_url = TypeAdapter(AnyHttpUrl)


def _strip(v):
    return v.strip() if isinstance(v, str) else v


def _lower_strip(v):
    return v.strip().lower() if isinstance(v, str) else v


def _not_reserved(label: str):
    def check(v: str) -> str:
        lowered = v.lower()
        if lowered in RESERVED_NAMES or lowered.startswith(RESERVED_NAME_PREFIXES):
            raise ValueError(f"This {label} is not available for use.")
        return v
    return check


def _email_address(v: str) -> str:
    try:
        _email.validate_python(v)
    except PydanticValidationError:
        raise ValueError("value is not a valid email address")
    return v.lower()


def _http_url_string(v: str) -> str:
    try:
        url = _http_url.validate_python(v)
    except PydanticValidationError:
        raise ValueError("must be a valid http or https URL")
    if url.scheme not in ("http", "https"):
        raise ValueError("must be a valid http or https URL")
    return v


def _visible_text(v):
    """Reject text starting with an invisible character; drop trailing invisible ones."""
    if not isinstance(v, str):
        return v
    if v and is_invisible(v[0]):
        raise ValueError("must start with visible characters")
    return strip_trailing_invisible(v)


def _trailing_invisible(v):
    return strip_trailing_invisible(v) if isinstance(v, str) else v


Tag = Annotated[
    str,
    BeforeValidator(_strip),
    Field(min_length=1, max_length=30, pattern=r"^[a-zA-Z0-9]+$"),
    AfterValidator(_not_reserved("tag")),
]

Username = Annotated[
    str,
    BeforeValidator(_strip),
    Field(min_length=1, max_length=30, pattern=r"^[a-zA-Z0-9À-ſ ]+$"),
    AfterValidator(_not_reserved("username")),
]

Email = Annotated[
    str,
    BeforeValidator(_lower_strip),
    Field(min_length=7, max_length=254),
    AfterValidator(_email_address),
]

Password = Annotated[str, BeforeValidator(_strip), Field(min_length=8, max_length=72)]

Description = Annotated[str, BeforeValidator(_trailing_invisible), Field(max_length=DESCRIPTION_MAX_LENGTH)]

Picture = Annotated[str, AfterValidator(_http_url_string)]

Body = Annotated[
    str,
    BeforeValidator(_visible_text),
    Field(min_length=1, max_length=TUIT_BODY_MAX_LENGTH),
]
