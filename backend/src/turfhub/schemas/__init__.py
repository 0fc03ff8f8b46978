"""Pydantic schemas for API requests/responses."""

from turfhub.schemas.common import (
    ApiResponse,
    ErrorResponse,
    PaginatedResponse,
    envelope,
)

__all__ = [
    "ApiResponse",
    "ErrorResponse",
    "PaginatedResponse",
    "envelope",
]
