"""Authentication endpoints."""

import logging
from typing import Literal

from fastapi import APIRouter, Request, Response, status

from turfhub.api.deps import (
    ADMIN_COOKIE,
    ORG_COOKIE,
    SESSION_COOKIES,
    USER_COOKIE,
    AuthRateLimit,
    CurrentUser,
    SessionDep,
)
from turfhub.config import settings
from turfhub.models.user import User, UserRead
from turfhub.schemas import envelope
from turfhub.schemas.auth import (
    EmailRequest,
    LoginRequest,
    OrganizationLoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
)
from turfhub.services import accounts
from turfhub.services.auth import create_token

logger = logging.getLogger(__name__)

router = APIRouter()

COOKIE_MAX_AGE = settings.jwt_expiration_days * 24 * 60 * 60


def set_session_cookie(
    response: Response,
    name: str,
    token: str,
    samesite: Literal["lax", "strict", "none"],
) -> None:
    """Set an HTTP-only session cookie that lives as long as the JWT."""
    response.set_cookie(
        key=name,
        value=token,
        max_age=COOKIE_MAX_AGE,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite=samesite,
    )


def _user_data(user: User) -> dict:
    return UserRead.model_validate(user).model_dump(mode="json")


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, session: SessionDep, _rate_limit: AuthRateLimit):
    """Register a new user and send the verification email."""
    user, email_sent = await accounts.register(
        session,
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
        password=body.password,
        role=body.role,
    )

    if email_sent:
        message = "Registration successful! Please check your email to verify your account."
    else:
        message = (
            "Registration successful, but we could not send the verification email. "
            "Please request a new verification link."
        )

    return envelope({"user": _user_data(user)}, message)


@router.post("/login")
async def login(
    body: LoginRequest,
    response: Response,
    session: SessionDep,
    _rate_limit: AuthRateLimit,
):
    """Log in with email and password; sets the ``token`` cookie."""
    user = await accounts.authenticate(session, body.email, body.password)
    token = create_token(user)

    set_session_cookie(response, USER_COOKIE, token, samesite="none")
    response.headers["Cache-Control"] = "no-store"

    return envelope({"user": _user_data(user), "token": token})


@router.post("/admin/login")
async def admin_login(
    body: LoginRequest,
    response: Response,
    session: SessionDep,
    _rate_limit: AuthRateLimit,
):
    """Log in to the admin dashboard; requires admin dashboard permission."""
    user = await accounts.authenticate_admin(session, body.email, body.password)
    token = create_token(user)
    logger.info(f"Admin session issued for user {user.id}")

    set_session_cookie(response, ADMIN_COOKIE, token, samesite="lax")
    set_session_cookie(response, USER_COOKIE, token, samesite="lax")
    response.headers["Cache-Control"] = "no-store"

    return envelope({"user": _user_data(user)})


@router.post("/organization/login")
async def organization_login(
    body: OrganizationLoginRequest,
    response: Response,
    session: SessionDep,
    _rate_limit: AuthRateLimit,
):
    """Log in as a member of an organization; sets the ``org_token`` cookie."""
    user = await accounts.authenticate_organization(
        session, body.email, body.password, body.organization_id
    )
    token = create_token(user)

    set_session_cookie(response, ORG_COOKIE, token, samesite="lax")
    set_session_cookie(response, USER_COOKIE, token, samesite="lax")
    response.headers["Cache-Control"] = "no-store"

    return envelope({"user": _user_data(user), "organization_id": body.organization_id.strip()})


@router.post("/logout")
async def logout(response: Response):
    """Clear every session cookie, whichever were set."""
    for name in SESSION_COOKIES:
        response.delete_cookie(name, path="/", httponly=True, samesite="lax")
    return envelope(message="Logged out successfully")


@router.get("/me")
async def get_me(
    request: Request,
    user: CurrentUser,
    session: SessionDep,
    organization_id: str | None = None,
):
    """Current user, re-checking admin or organization access for scoped sessions."""
    if request.cookies.get(ADMIN_COOKIE):
        await accounts.require_admin_access(session, user.id, "Not authorized as admin")

    if request.cookies.get(ORG_COOKIE) and organization_id:
        await accounts.require_organization_access(session, user.id, organization_id)

    return envelope(_user_data(user))


@router.post("/forgot-password")
async def forgot_password(body: EmailRequest, session: SessionDep, _rate_limit: AuthRateLimit):
    """Email a single-use password reset link."""
    await accounts.forgot_password(session, body.email)
    return envelope(message="Password reset email sent. Please check your inbox.")


@router.post("/reset-password")
async def reset_password(
    body: ResetPasswordRequest,
    session: SessionDep,
    _rate_limit: AuthRateLimit,
    token: str | None = None,
    id: str | None = None,
):
    """Set a new password using the token and user id from the reset link."""
    await accounts.reset_password(session, id, token, body.password)
    return envelope(message="Password reset successful. You can now log in.")


@router.post("/verify-email")
async def verify_email(
    session: SessionDep,
    _rate_limit: AuthRateLimit,
    token: str | None = None,
    id: str | None = None,
):
    """Confirm an email address using the token and user id from the link."""
    await accounts.verify_email(session, token, id)
    return envelope(message="Email verified successfully!")


@router.post("/resend-verification")
async def resend_verification(body: EmailRequest, session: SessionDep, _rate_limit: AuthRateLimit):
    """Send a fresh verification link to an unverified account."""
    await accounts.resend_verification(session, body.email)
    return envelope(message="Verification email has been sent. Please check your inbox.")
