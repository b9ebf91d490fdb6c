"""Custom exceptions for the application."""
from typing import Any, Optional


class AppException(Exception):
    """Base application exception."""

    status_code: int = 400

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(AppException):
    """Bad or missing input, with field-level messages."""

    status_code = 400

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        errors: Optional[list[dict[str, str]]] = None,
    ):
        if errors is None:
            errors = [{"field": field, "message": message}] if field else []
        super().__init__(
            message,
            error_code="VALIDATION_ERROR",
            details={"errors": errors},
        )

    @property
    def errors(self) -> list[dict[str, str]]:
        return self.details["errors"]


class NotFoundError(AppException):
    """Resource not found errors."""

    status_code = 404

    def __init__(self, resource: str, resource_id: Any = None, message: Optional[str] = None):
        if message is None:
            message = (
                f"{resource} with id {resource_id} not found"
                if resource_id is not None
                else f"{resource} not found"
            )
        super().__init__(
            message,
            error_code="NOT_FOUND",
            details={"resource": resource, "id": resource_id},
        )


class ConflictError(AppException):
    """Business rule violations: no copies left, duplicate borrow or review."""

    status_code = 409

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(
            message,
            error_code="CONFLICT",
            details={"reason": reason} if reason else {},
        )


class UpstreamError(AppException):
    """Generative model failures: unreachable, timed out or malformed output."""

    status_code = 502

    def __init__(self, service: str, message: str):
        super().__init__(
            f"{service} error: {message}",
            error_code="UPSTREAM_ERROR",
            details={"service": service},
        )
