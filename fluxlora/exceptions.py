"""Application-wide exception hierarchy."""

from typing import Any, Optional


class AppError(Exception):
    """Base application error carrying the HTTP status it maps to."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Any] = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details

    @property
    def public_details(self) -> Optional[Any]:
        """Details safe to send to the caller. Only validation errors expose any."""
        return None


class ValidationError(AppError):
    """Raised when a request body or parameter fails validation."""

    status_code = 400
    code = "VALIDATION_ERROR"

    @property
    def public_details(self) -> Optional[Any]:
        return self.details


class AuthenticationError(AppError):
    status_code = 401
    code = "UNAUTHORIZED"


class InvalidTokenError(AuthenticationError):
    """Token is malformed, expired or badly signed. Deliberately indistinguishable."""

    def __init__(self):
        super().__init__("Invalid or expired token")


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"


class MethodNotAllowedError(AppError):
    status_code = 405
    code = "METHOD_NOT_ALLOWED"

    def __init__(self, method: str = ""):
        super().__init__("Method not allowed")
        self.method = method


class ConflictError(AppError):
    status_code = 409
    code = "CONFLICT"


class ConfigurationError(AppError):
    """A required piece of server configuration is missing."""


class RecordNotFoundError(NotFoundError):
    """Conditional write failed because the record does not exist."""

    def __init__(self, table: str, record_id: str):
        super().__init__("Resource not found")
        self.table = table
        self.record_id = record_id


class RecordExistsError(ConflictError):
    """Conditional create failed because the key is already occupied."""

    def __init__(self, table: str, record_id: str):
        super().__init__("Resource already exists")
        self.table = table
        self.record_id = record_id
