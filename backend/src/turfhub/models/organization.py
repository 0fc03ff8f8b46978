"""Organization model."""

from sqlmodel import Field, SQLModel

from turfhub.models.base import BaseModel


class Organization(BaseModel, table=True):
    """A turf-owning organization."""

    __tablename__ = "organizations"

    name: str = Field(max_length=255)
    slug: str = Field(unique=True, index=True, max_length=255)


class OrganizationCreate(SQLModel):
    """Schema for creating an organization."""

    name: str = ""
    slug: str | None = None


class OrganizationRead(SQLModel):
    """Schema for reading an organization."""

    id: str
    name: str
    slug: str
