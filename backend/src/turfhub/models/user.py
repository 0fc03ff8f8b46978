"""User model."""

from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from turfhub.models.base import BaseModel

DEFAULT_ROLE = "user"


class User(BaseModel, table=True):
    """User account model.

    ``email`` is always stored lower-cased; lookups compare ``lower(email)``
    so uniqueness holds regardless of the case a client sends.
    """

    __tablename__ = "users"

    first_name: str = Field(max_length=100)
    last_name: str = Field(max_length=100)
    email: str = Field(unique=True, index=True, max_length=255)
    password_hash: str = Field(max_length=255)
    phone: str | None = Field(default=None, max_length=32)
    role: str = Field(default=DEFAULT_ROLE, max_length=32)
    is_verified: bool = Field(default=False)
    verification_token: str | None = Field(default=None, max_length=255)
    verification_token_expires: datetime | None = Field(
        default=None,
        sa_type=DateTime(timezone=True),  # type: ignore[call-overload]
    )


class UserRead(SQLModel):
    """Public view of a user. Never carries credentials or tokens."""

    id: str
    first_name: str
    last_name: str
    email: str
    phone: str | None
    role: str
    is_verified: bool
    created_at: datetime
    updated_at: datetime


class UserUpdate(SQLModel):
    """Fields a user may change on their own profile."""

    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
