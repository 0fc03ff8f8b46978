"""FastAPI dependencies for dependency injection."""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from turfhub.database import get_session
from turfhub.models import Permission, User
from turfhub.services import access
from turfhub.services.auth import verify_token
from turfhub.services.errors import AuthError, PermissionDenied
from turfhub.services.rate_limit import (
    RateLimitType,
    check_rate_limit,
    rate_limit_headers,
)

logger = logging.getLogger(__name__)

# Session cookies
USER_COOKIE = "token"
ADMIN_COOKIE = "admin_token"
ORG_COOKIE = "org_token"
SESSION_COOKIES = (USER_COOKIE, ADMIN_COOKIE, ORG_COOKIE)

SessionDep = Annotated[AsyncSession, Depends(get_session)]

# Bearer tokens are accepted for API clients that do not keep cookies
security = HTTPBearer(auto_error=False)


def extract_session_token(
    request: Request, credentials: HTTPAuthorizationCredentials | None
) -> str | None:
    """Pick the session token: user cookie, then admin cookie, then bearer header."""
    for cookie in (USER_COOKIE, ADMIN_COOKIE):
        token = request.cookies.get(cookie)
        if token:
            return token
    if credentials:
        return credentials.credentials
    return None


async def get_current_user(
    request: Request,
    session: SessionDep,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> User:
    """Get current authenticated user or raise 401."""
    token = extract_session_token(request, credentials)
    if not token:
        raise AuthError()

    try:
        return await verify_token(session, token)
    except AuthError:
        logger.debug("Session token rejected")
        raise


CurrentUser = Annotated[User, Depends(get_current_user)]


class RequirePermission:
    """Dependency that requires a global permission on top of authentication.

    Usage:
        @router.get("/admin")
        async def endpoint(
            user: Annotated[User, Depends(RequirePermission(Permission.VIEW_USERS))]
        ):
            ...
    """

    def __init__(self, permission: Permission | str) -> None:
        self.permission = permission.value if isinstance(permission, Permission) else permission

    async def __call__(self, user: CurrentUser, session: SessionDep) -> User:
        if not await access.has_permission(session, user.id, self.permission):
            logger.info(f"User {user.id} lacks permission {self.permission}")
            raise PermissionDenied()
        return user


ViewUsersUser = Annotated[User, Depends(RequirePermission(Permission.VIEW_USERS))]
ManageRolesUser = Annotated[User, Depends(RequirePermission(Permission.MANAGE_ROLES))]


class RateLimitDependency:
    """Dependency class for rate limiting endpoints."""

    def __init__(self, limit_type: RateLimitType) -> None:
        self.limit_type = limit_type

    async def __call__(self, request: Request) -> None:
        """Check rate limit and raise 429 if exceeded."""
        result = await check_rate_limit(request, self.limit_type)

        if not result.success:
            headers = rate_limit_headers(result)
            retry_after = headers.get("Retry-After", "60")
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=f"Rate limit exceeded. Please try again in {retry_after} seconds.",
                headers=headers,
            )


AuthRateLimit = Annotated[None, Depends(RateLimitDependency(RateLimitType.AUTH))]
AccountRateLimit = Annotated[None, Depends(RateLimitDependency(RateLimitType.ACCOUNT))]
