"""Main API router that aggregates all route modules."""

from fastapi import APIRouter

from turfhub.api import auth, health, organizations, roles, users

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(organizations.router, prefix="/organizations", tags=["organizations"])

# Admin endpoints
api_router.include_router(roles.router, prefix="/roles", tags=["admin"])
api_router.include_router(roles.assignments_router, prefix="/role-assignments", tags=["admin"])
