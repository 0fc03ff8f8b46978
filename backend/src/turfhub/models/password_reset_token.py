"""Password reset token model."""

from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field

from turfhub.models.base import BaseModel


class PasswordResetToken(BaseModel, table=True):
    """Single-use password reset token, one per user.

    Only a keyed hash of the token is stored; the raw value exists in the
    email link alone.
    """

    __tablename__ = "password_reset_tokens"

    user_id: str = Field(
        foreign_key="users.id",
        ondelete="CASCADE",
        unique=True,
        index=True,
        max_length=21,
    )
    token_hash: str = Field(max_length=128)
    expires: datetime = Field(
        sa_type=DateTime(timezone=True),  # type: ignore[call-overload]
        description="Token expiration time",
    )
