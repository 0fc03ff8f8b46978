"""Role catalog and role assignment endpoints (admin)."""

from fastapi import APIRouter, status
from sqlmodel import select

from turfhub.api.deps import ManageRolesUser, SessionDep
from turfhub.models import Role, RoleScope
from turfhub.models.role import RoleAssignmentRead, RoleRead
from turfhub.schemas import ApiResponse
from turfhub.schemas.auth import AssignRoleRequest
from turfhub.services import access, accounts
from turfhub.services.errors import NotFound, ServiceError

router = APIRouter()
assignments_router = APIRouter()


@router.get("/global", response_model=ApiResponse[list[RoleRead]])
async def list_global_roles(_user: ManageRolesUser, session: SessionDep):
    """List roles that can be assigned outside an organization."""
    stmt = select(Role).where(Role.scope == RoleScope.GLOBAL).order_by(Role.name)
    result = await session.execute(stmt)
    return ApiResponse(data=[RoleRead.model_validate(role) for role in result.scalars().all()])


@assignments_router.post(
    "/users/{user_id}/assignments/global",
    response_model=ApiResponse[RoleAssignmentRead],
    status_code=status.HTTP_201_CREATED,
)
async def assign_global_role(
    user_id: str,
    body: AssignRoleRequest,
    _user: ManageRolesUser,
    session: SessionDep,
):
    """Grant a global role to a user."""
    if not body.role_id:
        raise ServiceError("Role id is required")

    user = await accounts.get_user(session, user_id)

    result = await session.execute(select(Role).where(Role.id == body.role_id))
    role = result.scalar_one_or_none()
    if not role:
        raise NotFound("Role not found")
    if role.scope != RoleScope.GLOBAL:
        raise ServiceError("Only global roles can be assigned here")

    assignment = await access.assign_role(session, user.id, role)
    if assignment is None:
        raise ServiceError("User already has this role")

    await session.commit()
    return ApiResponse(
        data=RoleAssignmentRead.model_validate(assignment),
        message=f"Role {role.name} assigned",
    )
