from typing import Any, Dict, Optional


class ApiError(Exception):
    """Error with an HTTP status and a machine readable code.

    Rendered by the global handler as
    ``{"success": false, "error": {"message", "code", "details"?}}``.
    """

    status_code = 500
    code = "INTERNAL_SERVER_ERROR"

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        details: Any = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        self.details = details
        self.extra = extra or {}


class ValidationFailed(ApiError):
    status_code = 400
    code = "VALIDATION_ERROR"


class AuthenticationError(ApiError):
    status_code = 401
    code = "NOT_AUTHENTICATED"


class ForbiddenError(ApiError):
    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(ApiError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(ApiError):
    status_code = 409
    code = "CONFLICT"


class DatabaseError(ApiError):
    status_code = 500
    code = "DATABASE_ERROR"


def require_positive_id(value: Any, label: str = "ID") -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationFailed(f"{label} must be a positive integer", code="INVALID_ID")
    return value
