"""Role and permission lookups."""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from turfhub.models import Organization, Permission, Role, RoleAssignment, RoleScope
from turfhub.models.role import DEFAULT_ROLES


async def get_global_roles_for_user(session: AsyncSession, user_id: str) -> list[Role]:
    """Roles the user holds outside of any organization."""
    stmt = (
        select(Role)
        .join(RoleAssignment, RoleAssignment.role_id == Role.id)  # type: ignore[arg-type]
        .where(RoleAssignment.user_id == user_id)
        .where(RoleAssignment.organization_id.is_(None))  # type: ignore[union-attr]
        .where(Role.scope == RoleScope.GLOBAL)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def has_permission(session: AsyncSession, user_id: str, permission: str) -> bool:
    """Check whether any global role assigned to the user grants ``permission``."""
    roles = await get_global_roles_for_user(session, user_id)
    return any(role.grants(permission) for role in roles)


async def check_admin_access(session: AsyncSession, user_id: str) -> bool:
    """Check whether the user may use the admin dashboard."""
    return await has_permission(session, user_id, Permission.ACCESS_ADMIN_DASHBOARD.value)


async def check_user_role_in_organization(
    session: AsyncSession, user_id: str, organization_id: str
) -> bool:
    """Check whether the user holds any role within the organization."""
    stmt = (
        select(RoleAssignment.id)
        .where(RoleAssignment.user_id == user_id)
        .where(RoleAssignment.organization_id == organization_id)
        .limit(1)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none() is not None


async def get_user_organizations(session: AsyncSession, user_id: str) -> list[Organization]:
    """Organizations the user holds at least one role in."""
    stmt = (
        select(Organization)
        .join(RoleAssignment, RoleAssignment.organization_id == Organization.id)  # type: ignore[arg-type]
        .where(RoleAssignment.user_id == user_id)
        .distinct()
        .order_by(Organization.name)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_or_create_default_role(session: AsyncSession, name: str) -> Role:
    """Fetch one of the built-in roles, creating it if it has not been seeded.

    The new role is flushed, not committed.
    """
    result = await session.execute(select(Role).where(Role.name == name))
    role = result.scalar_one_or_none()
    if role:
        return role

    scope, permissions, description = DEFAULT_ROLES[name]
    role = Role(
        name=name,
        description=description,
        scope=scope,
        permissions=[p.value for p in permissions],
    )
    session.add(role)
    await session.flush()
    return role


async def assign_role(
    session: AsyncSession,
    user_id: str,
    role: Role,
    organization_id: str | None = None,
) -> RoleAssignment | None:
    """Assign a role unless the same assignment already exists.

    Returns the new assignment, or None when it was already present. The
    assignment is flushed, not committed.
    """
    stmt = (
        select(RoleAssignment)
        .where(RoleAssignment.user_id == user_id)
        .where(RoleAssignment.role_id == role.id)
    )
    if organization_id is None:
        stmt = stmt.where(RoleAssignment.organization_id.is_(None))  # type: ignore[union-attr]
    else:
        stmt = stmt.where(RoleAssignment.organization_id == organization_id)

    result = await session.execute(stmt)
    if result.scalar_one_or_none():
        return None

    assignment = RoleAssignment(user_id=user_id, role_id=role.id, organization_id=organization_id)
    session.add(assignment)
    await session.flush()
    return assignment
