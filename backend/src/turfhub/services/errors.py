"""Service-layer errors."""

from fastapi import status


class ServiceError(Exception):
    """An error carrying the HTTP status it should be reported with.

    Raised by services and converted to the JSON error envelope by the
    handlers in ``turfhub.api.errors``.
    """

    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, status_code={self.status_code})"


class AuthError(ServiceError):
    """Authentication error."""

    def __init__(self, message: str = "Not authorized to access this route"):
        super().__init__(message, status.HTTP_401_UNAUTHORIZED)


class PermissionDenied(ServiceError):
    """Authorization error."""

    def __init__(self, message: str = "Not authorized to perform this action"):
        super().__init__(message, status.HTTP_403_FORBIDDEN)


class NotFound(ServiceError):
    """Missing resource."""

    def __init__(self, message: str = "Not found"):
        super().__init__(message, status.HTTP_404_NOT_FOUND)
