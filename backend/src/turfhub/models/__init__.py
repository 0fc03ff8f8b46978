"""SQLModel database models."""

from turfhub.models.base import BaseModel, TimestampMixin
from turfhub.models.organization import Organization
from turfhub.models.password_reset_token import PasswordResetToken
from turfhub.models.role import Permission, Role, RoleAssignment, RoleScope
from turfhub.models.user import User

__all__ = [
    "BaseModel",
    "Organization",
    "PasswordResetToken",
    "Permission",
    "Role",
    "RoleAssignment",
    "RoleScope",
    "TimestampMixin",
    "User",
]
