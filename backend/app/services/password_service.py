import asyncio
import logging
import secrets
import string

import bcrypt

logger = logging.getLogger(__name__)

DEFAULT_ROUNDS = 12
TEMPORARY_PASSWORD_LENGTH = 8
_TEMPORARY_ALPHABET = string.ascii_lowercase + string.digits


def _hash(plain: str, rounds: int) -> str:
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def _verify(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except (ValueError, TypeError, AttributeError) as e:
        logger.error(f"Password verification error: {e}")
        return False


async def hash_password(plain: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Salted bcrypt hash, computed off the event loop."""
    return await asyncio.to_thread(_hash, plain, rounds)


async def verify_password(plain: str, hashed: str) -> bool:
    """Check a password against a stored hash. A malformed hash yields False."""
    return await asyncio.to_thread(_verify, plain, hashed)


def generate_temporary_password(length: int = TEMPORARY_PASSWORD_LENGTH) -> str:
    """Short, typable one-time password. Uniqueness is not checked."""
    return "".join(secrets.choice(_TEMPORARY_ALPHABET) for _ in range(length))
