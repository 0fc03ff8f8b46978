"""Token service: password hashing, session JWTs and single-use secrets."""

import asyncio
import hashlib
import hmac
from datetime import UTC, datetime, timedelta
from secrets import token_hex

import bcrypt
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from turfhub.config import settings
from turfhub.models import User
from turfhub.services.errors import AuthError

# bcrypt only reads the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password."""
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def check_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed hash
        return False


# Checked against when the email is unknown so both failure paths pay for a bcrypt round
_DUMMY_HASH = hash_password("turfhub-timing-dummy")


async def hash_password_async(plain: str) -> str:
    """Hash a password without blocking the event loop."""
    return await asyncio.to_thread(hash_password, plain)


async def match_password(plain: str, user: User | None) -> bool:
    """Compare a password against a user's hash off the event loop.

    A missing user still costs one comparison against a dummy hash.
    """
    hashed = user.password_hash if user is not None else _DUMMY_HASH
    matched = await asyncio.to_thread(check_password, plain, hashed)
    return matched and user is not None


def create_token(user: User) -> str:
    """Create a session JWT for a user."""
    now = datetime.now(UTC)
    payload = {
        "sub": str(user.id),
        "exp": now + timedelta(days=settings.jwt_expiration_days),
        "iat": now,
    }
    return jwt.encode(payload, settings.session_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    """Decode and validate a session JWT."""
    try:
        return jwt.decode(
            token,
            settings.session_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as e:
        raise AuthError() from e


async def verify_token(session: AsyncSession, token: str) -> User:
    """Verify a session JWT and return the associated user."""
    payload = decode_token(token)

    user_id = payload.get("sub")
    if not user_id:
        raise AuthError()

    result = await session.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise AuthError()

    return user


def generate_secret() -> str:
    """Random single-use secret for verification and reset links."""
    return token_hex(32)


def hash_secret(raw: str) -> str:
    """Keyed SHA-256 of a single-use secret, for storage."""
    return hmac.new(
        settings.session_secret.encode("utf-8"),
        raw.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def secrets_match(provided: str, expected: str | None) -> bool:
    """Exact, constant-time comparison of two secrets."""
    if not expected:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))
