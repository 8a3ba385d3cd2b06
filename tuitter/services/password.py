"""bcrypt password hashing, run in a worker thread to keep the event loop free."""

import asyncio

import bcrypt

from tuitter.config import get_settings
from tuitter.errors import UnauthorizedError


def _encode(password: str) -> bytes:
    # bcrypt only looks at the first 72 bytes
    return password.encode("utf-8")[:72]


async def hash_password(password: str) -> str:
    rounds = get_settings().bcrypt_rounds
    hashed = await asyncio.to_thread(bcrypt.hashpw, _encode(password), bcrypt.gensalt(rounds))
    return hashed.decode("utf-8")


async def compare_passwords(provided: str, password_hash: str) -> None:
    """Raise UnauthorizedError unless ``provided`` matches ``password_hash``."""
    matches = await asyncio.to_thread(bcrypt.checkpw, _encode(provided), password_hash.encode("utf-8"))
    if not matches:
        raise UnauthorizedError(
            "The password does not match the user's password.",
            "Check that the password is correct and try again.",
            error_location_code="MODEL:AUTHENTICATION:COMPARE_PASSWORDS:PASSWORD_MISMATCH",
        )
