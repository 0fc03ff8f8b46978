"""Organization endpoints."""

import re

from fastapi import APIRouter, status
from sqlmodel import select

from turfhub.api.deps import CurrentUser, SessionDep
from turfhub.models import Organization
from turfhub.models.organization import OrganizationCreate, OrganizationRead
from turfhub.models.role import ORGANIZATION_OWNER_ROLE
from turfhub.schemas import ApiResponse
from turfhub.services import access, accounts
from turfhub.services.errors import NotFound, ServiceError

router = APIRouter()


def slugify(name: str) -> str:
    """Convert a name to a URL-friendly slug.

    Examples:
        slugify("Green Field Arena") -> "green-field-arena"
    """
    text = name.lower().strip()
    text = re.sub(r"[^\w\s-]", "", text)
    return re.sub(r"[-\s_]+", "-", text).strip("-")


@router.post("", response_model=ApiResponse[OrganizationRead], status_code=status.HTTP_201_CREATED)
async def create_organization(body: OrganizationCreate, user: CurrentUser, session: SessionDep):
    """Create an organization; the creator becomes its owner."""
    name = body.name.strip()
    if not name:
        raise ServiceError("Organization name is required")

    slug = slugify(body.slug or name)
    if not slug:
        raise ServiceError("Organization slug is invalid")

    existing = await session.execute(select(Organization).where(Organization.slug == slug))
    if existing.scalar_one_or_none():
        raise ServiceError(f"Organization with slug '{slug}' already exists")

    organization = Organization(name=name, slug=slug)
    session.add(organization)
    await session.flush()

    owner_role = await access.get_or_create_default_role(session, ORGANIZATION_OWNER_ROLE)
    await access.assign_role(session, user.id, owner_role, organization.id)
    await session.commit()

    return ApiResponse(data=OrganizationRead.model_validate(organization))


@router.get("/{organization_id}", response_model=ApiResponse[OrganizationRead])
async def get_organization(organization_id: str, user: CurrentUser, session: SessionDep):
    """Get an organization the current user belongs to."""
    result = await session.execute(select(Organization).where(Organization.id == organization_id))
    organization = result.scalar_one_or_none()
    if not organization:
        raise NotFound("Organization not found")

    await accounts.require_organization_access(session, user.id, organization.id)

    return ApiResponse(data=OrganizationRead.model_validate(organization))
