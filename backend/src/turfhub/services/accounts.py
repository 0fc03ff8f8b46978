"""Account flows: registration, login, email verification and password reset.

Every function takes the request's ``AsyncSession``, commits its own
changes before returning, and reports failures by raising ``ServiceError``
(or one of its subclasses) with the HTTP status the client should see.
"""

import logging
from datetime import UTC, datetime, timedelta

from email_validator import EmailNotValidError, validate_email
from fastapi import status
from sqlalchemy import delete, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from turfhub.config import settings
from turfhub.models import PasswordResetToken, User
from turfhub.models.base import as_utc
from turfhub.models.user import DEFAULT_ROLE, UserUpdate
from turfhub.services import access
from turfhub.services.auth import (
    MAX_PASSWORD_BYTES,
    generate_secret,
    hash_password_async,
    hash_secret,
    match_password,
    secrets_match,
)
from turfhub.services.email import email_service
from turfhub.services.errors import AuthError, NotFound, PermissionDenied, ServiceError

logger = logging.getLogger(__name__)

# Profile roles a user may pick at sign-up. Permissions come from role assignments.
USER_ROLES = (DEFAULT_ROLE, "owner")

INVALID_CREDENTIALS = "Invalid credentials"
INVALID_RESET_TOKEN = "Invalid or expired password reset token"


def normalize_email(raw: str | None) -> str:
    """Strip whitespace and lower-case an email address."""
    return (raw or "").strip().lower()


def ensure_valid_email(email: str) -> None:
    """Raise a 400 unless ``email`` is syntactically valid."""
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError as e:
        raise ServiceError("Invalid email format") from e


def ensure_password_strength(password: str) -> None:
    if len(password) < settings.password_min_length:
        raise ServiceError(
            f"Password must be at least {settings.password_min_length} characters"
        )
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ServiceError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    """Case-insensitive user lookup."""
    stmt = select(User).where(func.lower(User.email) == normalize_email(email))
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_user(session: AsyncSession, user_id: str) -> User:
    """Fetch a user by id or raise 404."""
    result = await session.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFound("User not found")
    return user


def _verification_link(user: User, token: str) -> str:
    return f"{settings.app_url}/verify-email?token={token}&id={user.id}"


def _reset_link(user: User, token: str) -> str:
    return f"{settings.app_url}/reset-password?token={token}&id={user.id}"


async def _issue_verification(session: AsyncSession, user: User) -> bool:
    """Store a fresh verification token on the user and email it.

    The token is committed before the email goes out. Returns whether the
    email was delivered.
    """
    token = generate_secret()
    user.verification_token = token
    user.verification_token_expires = datetime.now(UTC) + timedelta(
        hours=settings.verification_token_expiration_hours
    )
    session.add(user)
    await session.commit()

    return await email_service.send_verification_email(
        to=user.email,
        first_name=user.first_name,
        link=_verification_link(user, token),
    )


async def register(
    session: AsyncSession,
    *,
    first_name: str,
    last_name: str,
    email: str,
    password: str,
    role: str | None = None,
) -> tuple[User, bool]:
    """Create an account and send its verification email.

    Returns the user and whether the verification email was delivered.
    """
    first_name = first_name.strip()
    last_name = last_name.strip()
    email = normalize_email(email)
    password = password.strip()

    if not first_name or not last_name or not email or not password:
        raise ServiceError("All fields are required")

    ensure_valid_email(email)
    ensure_password_strength(password)

    role = (role or "").strip().lower() or DEFAULT_ROLE
    if role not in USER_ROLES:
        raise ServiceError(f"Role must be one of: {', '.join(USER_ROLES)}")

    if await get_user_by_email(session, email):
        raise ServiceError("Email already registered")

    user = User(
        first_name=first_name,
        last_name=last_name,
        email=email,
        password_hash=await hash_password_async(password),
        role=role,
    )
    session.add(user)
    try:
        await session.flush()
    except IntegrityError as e:
        # Lost a race with a concurrent registration for the same address
        await session.rollback()
        raise ServiceError("Email already registered") from e

    email_sent = await _issue_verification(session, user)
    if not email_sent:
        logger.error(f"Verification email to user {user.id} could not be delivered")

    logger.info(f"Registered user {user.id}")
    return user, email_sent


async def authenticate(session: AsyncSession, email: str, password: str) -> User:
    """Check credentials and return the user.

    Unknown email and wrong password fail with the same message.
    """
    email = normalize_email(email)
    password = (password or "").strip()

    if not email or not password:
        raise ServiceError("Please provide an email and password")

    ensure_valid_email(email)

    user = await get_user_by_email(session, email)
    if not await match_password(password, user) or user is None:
        raise AuthError(INVALID_CREDENTIALS)

    return user


async def require_admin_access(
    session: AsyncSession,
    user_id: str,
    denied_message: str = "Unauthorized access to admin dashboard",
) -> None:
    """Raise 403 unless the user may use the admin dashboard."""
    try:
        allowed = await access.check_admin_access(session, user_id)
    except SQLAlchemyError as e:
        logger.exception(f"Admin access verification failed for user {user_id}")
        raise ServiceError(
            "Admin access verification failed", status.HTTP_500_INTERNAL_SERVER_ERROR
        ) from e

    if not allowed:
        logger.warning(f"User {user_id} denied admin dashboard access")
        raise PermissionDenied(denied_message)


async def require_organization_access(
    session: AsyncSession, user_id: str, organization_id: str
) -> None:
    """Raise 403 unless the user holds a role in the organization."""
    try:
        allowed = await access.check_user_role_in_organization(session, user_id, organization_id)
    except SQLAlchemyError as e:
        logger.exception(f"Organization access verification failed for user {user_id}")
        raise PermissionDenied("Organization access verification failed") from e

    if not allowed:
        raise PermissionDenied("Not authorized as organization owner")


async def authenticate_admin(session: AsyncSession, email: str, password: str) -> User:
    """Authenticate and require admin dashboard access."""
    user = await authenticate(session, email, password)
    await require_admin_access(session, user.id)
    return user


async def authenticate_organization(
    session: AsyncSession, email: str, password: str, organization_id: str
) -> User:
    """Authenticate and require a role in the given organization."""
    organization_id = (organization_id or "").strip()
    if not organization_id:
        raise ServiceError("Organization id is required")

    user = await authenticate(session, email, password)
    await require_organization_access(session, user.id, organization_id)
    return user


async def verify_email(session: AsyncSession, token: str | None, user_id: str | None) -> User:
    """Consume a verification token and mark the user verified."""
    if not token or not user_id:
        raise ServiceError("Invalid verification link")

    user = await get_user(session, user_id)

    expires = user.verification_token_expires
    if (
        not secrets_match(token, user.verification_token)
        or expires is None
        or datetime.now(UTC) > as_utc(expires)
    ):
        raise ServiceError("Invalid or expired token")

    user.is_verified = True
    user.verification_token = None
    user.verification_token_expires = None
    session.add(user)
    await session.commit()

    logger.info(f"Verified email for user {user.id}")
    return user


async def resend_verification(session: AsyncSession, email: str) -> None:
    """Send a new verification email to an unverified account."""
    email = normalize_email(email)
    if not email:
        raise ServiceError("Email is required")

    ensure_valid_email(email)

    user = await get_user_by_email(session, email)
    if not user:
        raise NotFound("User with this email not found")

    if user.is_verified:
        raise ServiceError("Email is already verified")

    if not await _issue_verification(session, user):
        raise ServiceError(
            "Failed to send verification email", status.HTTP_500_INTERNAL_SERVER_ERROR
        )


async def forgot_password(session: AsyncSession, email: str) -> None:
    """Replace the user's reset token with a new one and email it."""
    email = normalize_email(email)
    if not email:
        raise ServiceError("Please provide an email")

    user = await get_user_by_email(session, email)
    if not user:
        raise NotFound("User not found")

    # Any earlier token is superseded
    await session.execute(delete(PasswordResetToken).where(PasswordResetToken.user_id == user.id))

    raw_token = generate_secret()
    record = PasswordResetToken(
        user_id=user.id,
        token_hash=hash_secret(raw_token),
        expires=datetime.now(UTC) + timedelta(minutes=settings.password_reset_expiration_minutes),
    )
    session.add(record)
    await session.commit()

    sent = await email_service.send_password_reset_email(
        to=user.email,
        first_name=user.first_name,
        link=_reset_link(user, raw_token),
    )
    if not sent:
        logger.error(f"Password reset email to user {user.id} could not be delivered")
        await session.delete(record)
        await session.commit()
        raise ServiceError(
            "Failed to send password reset email", status.HTTP_500_INTERNAL_SERVER_ERROR
        )


async def reset_password(
    session: AsyncSession, user_id: str | None, token: str | None, password: str | None
) -> None:
    """Consume a reset token and set a new password."""
    password = (password or "").strip()
    if not token or not user_id or not password:
        raise ServiceError("Invalid request. Missing parameters.")

    result = await session.execute(
        select(PasswordResetToken).where(PasswordResetToken.user_id == user_id)
    )
    record = result.scalar_one_or_none()
    if not record or not secrets_match(hash_secret(token), record.token_hash):
        raise ServiceError(INVALID_RESET_TOKEN)

    if datetime.now(UTC) > as_utc(record.expires):
        await session.delete(record)
        await session.commit()
        raise ServiceError(INVALID_RESET_TOKEN)

    ensure_password_strength(password)

    user = await get_user(session, user_id)
    user.password_hash = await hash_password_async(password)
    session.add(user)
    await session.delete(record)
    await session.commit()

    logger.info(f"Password reset for user {user.id}")


async def update_profile(session: AsyncSession, user: User, changes: UserUpdate) -> User:
    """Apply profile changes from the user themselves."""
    update_data = changes.model_dump(exclude_unset=True)

    for field in ("first_name", "last_name"):
        if field in update_data:
            value = (update_data[field] or "").strip()
            if not value:
                raise ServiceError(f"{field.replace('_', ' ').capitalize()} cannot be empty")
            update_data[field] = value

    if "phone" in update_data:
        update_data["phone"] = (update_data["phone"] or "").strip() or None

    for key, value in update_data.items():
        setattr(user, key, value)

    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


async def change_password(
    session: AsyncSession, user: User, current_password: str, new_password: str
) -> None:
    """Change a password after checking the current one."""
    current_password = (current_password or "").strip()
    new_password = (new_password or "").strip()

    if not current_password or not new_password:
        raise ServiceError("Please provide current and new password")

    if not await match_password(current_password, user):
        raise AuthError("Current password is incorrect")

    ensure_password_strength(new_password)

    user.password_hash = await hash_password_async(new_password)
    session.add(user)
    await session.commit()
