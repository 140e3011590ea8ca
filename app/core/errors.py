"""
API error taxonomy.

Operations raise these independently of the transport; the FastAPI app
renders them as ``{"error": ..., "message": ...}`` with ``status_code``.
"""
from fastapi import status


class ApiError(Exception):
    """Base class for errors reported to the caller."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_error: str = "Internal server error"

    def __init__(self, error: str | None = None, message: str | None = None):
        self.error = error or self.default_error
        self.message = message
        super().__init__(self.error if message is None else f"{self.error}: {message}")

    def to_dict(self) -> dict:
        content = {"error": self.error}
        if self.message:
            content["message"] = self.message
        return content


class Unauthenticated(ApiError):
    """Missing, malformed or rejected credentials."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_error = "Unauthorized"


class Forbidden(ApiError):
    """Valid credentials, insufficient role."""

    status_code = status.HTTP_403_FORBIDDEN
    default_error = "Forbidden. Admin only."


class BadRequest(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_error = "Bad request"


class NotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    default_error = "Not found"


class UpstreamFailure(ApiError):
    """A store, verifier or remote service failed for reasons outside input validation."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_error = "Upstream service failure"


class InvalidRole(BadRequest):
    def __init__(self, role: object, valid_roles: list[str]):
        self.role = role
        super().__init__(f"Invalid role. Use: {', '.join(valid_roles)}")


class UnknownModule(BadRequest):
    def __init__(self, keys: list[str]):
        self.keys = keys
        super().__init__(f"Invalid permissions: {', '.join(keys)}")


class InvalidGrantShape(BadRequest):
    def __init__(self, key: str):
        self.key = key
        super().__init__(
            f'Invalid permission value for "{key}": expected a boolean or {{"read": bool, "write": bool}}'
        )
