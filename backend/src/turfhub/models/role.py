"""Role, permission and role assignment models."""

from enum import Enum

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel

from turfhub.models.base import BaseModel


class Permission(str, Enum):
    """Permission names granted by roles."""

    ACCESS_ADMIN_DASHBOARD = "access_admin_dashboard"
    VIEW_USERS = "view_users"
    MANAGE_ROLES = "manage_roles"
    MANAGE_TAGS = "manage_tags"
    MANAGE_ORGANIZATION = "manage_organization"


class RoleScope(str, Enum):
    """Where a role applies."""

    GLOBAL = "global"
    ORGANIZATION = "organization"


SUPER_ADMIN_ROLE = "super_admin"
ORGANIZATION_OWNER_ROLE = "organization_owner"

# Roles created by `turfhub roles seed` (and on demand by the API)
DEFAULT_ROLES: dict[str, tuple[RoleScope, list[Permission], str]] = {
    SUPER_ADMIN_ROLE: (
        RoleScope.GLOBAL,
        [
            Permission.ACCESS_ADMIN_DASHBOARD,
            Permission.VIEW_USERS,
            Permission.MANAGE_ROLES,
            Permission.MANAGE_TAGS,
        ],
        "Full access to the admin dashboard",
    ),
    ORGANIZATION_OWNER_ROLE: (
        RoleScope.ORGANIZATION,
        [Permission.MANAGE_ORGANIZATION],
        "Owner of a turf organization",
    ),
}


class Role(BaseModel, table=True):
    """A named bundle of permissions."""

    __tablename__ = "roles"

    name: str = Field(unique=True, index=True, max_length=100)
    description: str | None = Field(default=None)
    scope: RoleScope = Field(default=RoleScope.GLOBAL)
    permissions: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    def grants(self, permission: str) -> bool:
        """Check whether this role includes a permission."""
        return permission in (self.permissions or [])


class RoleRead(SQLModel):
    """Schema for reading a role."""

    id: str
    name: str
    description: str | None
    scope: RoleScope
    permissions: list[str]


class RoleAssignment(BaseModel, table=True):
    """Grants a role to a user, globally or within one organization."""

    __tablename__ = "role_assignments"
    __table_args__ = (
        UniqueConstraint("user_id", "role_id", "organization_id", name="uq_role_assignment"),
    )

    user_id: str = Field(foreign_key="users.id", index=True, ondelete="CASCADE", max_length=21)
    role_id: str = Field(foreign_key="roles.id", index=True, ondelete="CASCADE", max_length=21)
    organization_id: str | None = Field(
        default=None,
        foreign_key="organizations.id",
        index=True,
        ondelete="CASCADE",
        max_length=21,
    )


class RoleAssignmentRead(SQLModel):
    """Schema for reading a role assignment."""

    id: str
    user_id: str
    role_id: str
    organization_id: str | None
