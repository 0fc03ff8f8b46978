"""Common schemas used across the API."""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Response envelope shared by every endpoint."""

    success: bool = True
    data: T | None = None
    message: str | None = None


class PaginatedResponse(BaseModel, Generic[T]):
    """Envelope for paginated lists."""

    success: bool = True
    data: list[T]
    total: int
    offset: int
    limit: int

    @property
    def has_more(self) -> bool:
        """Check if there are more items."""
        return self.offset + len(self.data) < self.total


class ErrorResponse(BaseModel):
    """Standard error response."""

    success: bool = False
    error: str


def envelope(data: Any = None, message: str | None = None) -> dict[str, Any]:
    """Build a success envelope, omitting empty keys."""
    body: dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    if message is not None:
        body["message"] = message
    return body
