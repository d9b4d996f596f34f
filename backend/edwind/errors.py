"""Application error hierarchy.

Services raise these exceptions; the FastAPI application maps every
`AppError` onto a JSON error response with the matching status code.

- 400 `ValidationError`: invalid input or a rejected operation
- 401 `UnauthorizedError`: missing or invalid session
- 404 `NotFoundError`: resource does not exist
- 409 `ConflictError`: resource already exists or state conflict
"""

from typing import Optional


class AppError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Optional[dict] = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"success": False, "message": self.message, "code": self.code}
        if self.details:
            body.update(self.details)
        return body


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Validation failed"


class UnauthorizedError(AppError):
    status_code = 401
    code = "UNAUTHORIZED"
    default_message = "You must be logged in to access this resource"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Resource not found"


class ConflictError(AppError):
    status_code = 409
    code = "CONFLICT"
    default_message = "Resource conflict"


class IdentityProviderError(Exception):
    """Raised when the identity provider API cannot resolve a request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)
