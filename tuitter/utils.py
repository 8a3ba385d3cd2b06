"""Shared utility functions for Tuitter."""

import logging
import unicodedata
from datetime import datetime, UTC

from tuitter.constants import INVISIBLE_CHARACTERS

logger = logging.getLogger(__name__)


def now_utc() -> datetime:
    """Get current UTC time (timezone-aware)."""
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from SQLite."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def is_invisible(char: str) -> bool:
    """True for whitespace, control/format characters and blank-rendering glyphs."""
    return (
        char.isspace()
        or unicodedata.category(char).startswith("C")
        or char in INVISIBLE_CHARACTERS
    )


def strip_trailing_invisible(text: str) -> str:
    """Drop NUL characters and trailing invisible characters."""
    text = text.replace("\u0000", "")
    end = len(text)
    while end and is_invisible(text[end - 1]):
        end -= 1
    return text[:end]


def normalize_client_ip(raw_ip: str | None) -> str:
    """
    Normalize a client address taken from the socket or a proxy header.

    Args:
        raw_ip: Address as reported, possibly IPv6-mapped.

    Returns:
        Plain address, defaulting to loopback.
    """
    if not raw_ip:
        return "127.0.0.1"
    if raw_ip == "::1":
        return "127.0.0.1"
    if raw_ip.startswith("::ffff:"):
        return raw_ip[len("::ffff:"):]
    return raw_ip


def setup_logging(verbose: bool = False) -> None:
    """
    Configure logging for the application.

    Args:
        verbose: If True, set DEBUG level; otherwise INFO.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
