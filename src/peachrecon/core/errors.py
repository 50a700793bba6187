"""Reconciliation error types and the JSON error body they render to."""

from typing import Any, ClassVar, Optional

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Body of every error response: `{error, code, details?}`."""

    error: str = Field(..., description="Message shown to the reviewer")
    code: str = Field(..., description="Stable code clients branch on")
    details: Optional[dict[str, Any]] = Field(None, description="Ids and values behind the failure")


class AppError(Exception):
    """An expected failure carrying its HTTP status and error code."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_response(self) -> ErrorDetail:
        return ErrorDetail(error=self.message, code=self.code, details=self.details or None)


class _CodedError(AppError):
    """AppError whose code and status are fixed per subclass."""

    default_code: ClassVar[str]
    default_status: ClassVar[int]

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(self.default_code, message, self.default_status, details)


class ValidationError(_CodedError):
    """Missing or malformed input, e.g. no reconciliation_id or no items selected."""

    default_code = "VALIDATION_ERROR"
    default_status = 422


class ConflictError(_CodedError):
    """Duplicate property-month, or items already billed elsewhere."""

    default_code = "CONFLICT"
    default_status = 409


class InvalidStateError(_CodedError):
    """Month still open, or reconciliation locked after approval."""

    default_code = "INVALID_STATE"
    default_status = 400


class UpstreamDataError(_CodedError):
    """A property or owner the reconciliation points at is missing."""

    default_code = "UPSTREAM_DATA_ERROR"
    default_status = 500


class DatabaseError(_CodedError):
    """The transactional write failed and was rolled back."""

    default_code = "DATABASE_ERROR"
    default_status = 500


class NotFoundError(AppError):
    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            code="NOT_FOUND",
            message=f"{resource} with ID {resource_id} not found",
            status_code=404,
            details={"resource": resource, "resource_id": resource_id},
        )


class UnauthorizedError(AppError):
    """Bearer token missing, malformed, expired or without a subject."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(code="UNAUTHORIZED", message=message, status_code=401)
