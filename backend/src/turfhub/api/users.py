"""User profile and admin user endpoints."""

from fastapi import APIRouter, Query
from sqlalchemy import func
from sqlmodel import select

from turfhub.api.deps import AccountRateLimit, CurrentUser, SessionDep, ViewUsersUser
from turfhub.models import User
from turfhub.models.organization import OrganizationRead
from turfhub.models.user import UserRead, UserUpdate
from turfhub.schemas import ApiResponse, PaginatedResponse, envelope
from turfhub.schemas.auth import ChangePasswordRequest
from turfhub.services import access, accounts

router = APIRouter()


@router.get("/me", response_model=ApiResponse[UserRead])
async def get_profile(user: CurrentUser):
    """Get the current user's profile."""
    return ApiResponse(data=UserRead.model_validate(user))


@router.put("/me", response_model=ApiResponse[UserRead])
async def update_profile(changes: UserUpdate, user: CurrentUser, session: SessionDep):
    """Update the current user's profile."""
    user = await accounts.update_profile(session, user, changes)
    return ApiResponse(data=UserRead.model_validate(user), message="Profile updated")


@router.put("/change-password")
async def change_password(
    body: ChangePasswordRequest,
    user: CurrentUser,
    session: SessionDep,
    _rate_limit: AccountRateLimit,
):
    """Change the current user's password."""
    await accounts.change_password(session, user, body.current_password, body.new_password)
    return envelope(message="Password updated successfully")


@router.get("/organizations", response_model=ApiResponse[list[OrganizationRead]])
async def list_my_organizations(user: CurrentUser, session: SessionDep):
    """Organizations the current user belongs to."""
    organizations = await access.get_user_organizations(session, user.id)
    return ApiResponse(data=[OrganizationRead.model_validate(org) for org in organizations])


@router.get("/admin", response_model=PaginatedResponse[UserRead])
async def list_users(
    _user: ViewUsersUser,
    session: SessionDep,
    offset: int = Query(default=0, ge=0, description="Number of items to skip"),
    limit: int = Query(default=20, ge=1, le=100, description="Number of items to return"),
):
    """List all users (requires ``view_users``)."""
    total = (await session.execute(select(func.count()).select_from(User))).scalar() or 0

    stmt = (
        select(User)
        .order_by(User.created_at.desc(), User.id)  # type: ignore[attr-defined]
        .offset(offset)
        .limit(limit)
    )
    result = await session.execute(stmt)

    return PaginatedResponse(
        data=[UserRead.model_validate(u) for u in result.scalars().all()],
        total=total,
        offset=offset,
        limit=limit,
    )


@router.get("/{user_id}/admin", response_model=ApiResponse[UserRead])
async def get_user(user_id: str, _user: ViewUsersUser, session: SessionDep):
    """Get any user by id (requires ``view_users``)."""
    user = await accounts.get_user(session, user_id)
    return ApiResponse(data=UserRead.model_validate(user))
