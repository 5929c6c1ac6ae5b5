"""Domain exceptions for the task service.

Defines domain-level exceptions that represent business rule violations.
These exceptions are independent of infrastructure concerns. A transport
layer maps them to responses using message, error_code, and details.
"""

from typing import Any


class TaskDeskException(Exception):
    """Base exception for all task service errors.

    All custom exceptions should inherit from this class to allow
    consistent error handling and logging.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. field, resource_id).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class ValidationException(TaskDeskException):
    """Raised when input validation fails (malformed input, missing caller, bad form data)."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        field_errors: dict[str, list[str]] | None = None,
    ) -> None:
        """Initialize with message, optional field name and per-field errors.

        Args:
            message: Description of the validation failure.
            field: Optional field or attribute that failed validation.
            field_errors: Optional map of field name -> error messages.
        """
        details: dict[str, Any] = {}
        if field:
            details["field"] = field
        if field_errors:
            details["field_errors"] = field_errors
        super().__init__(message, "VALIDATION_ERROR", details)

    @property
    def field_errors(self) -> dict[str, list[str]]:
        return self.details.get("field_errors", {})


class DurationParseException(ValidationException):
    """Raised when a duration string such as '30m' cannot be parsed."""

    def __init__(self, value: str) -> None:
        super().__init__(
            f"Invalid duration format: {value!r}. "
            'Expected format like "500ms", "10m", "1h", "2d"',
            field="duration",
        )
        self.details["value"] = value


class ResourceNotFoundException(TaskDeskException):
    """Raised when a requested resource is not found (or belongs to another tenant)."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        """Initialize with resource type and id.

        Args:
            resource_type: Type of resource (e.g. 'task').
            resource_id: The ID that was not found.
        """
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class InvalidStateException(TaskDeskException):
    """Raised when an operation is illegal for the task's current status."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        status: str | None = None,
        error_code: str = "INVALID_STATE_TRANSITION",
    ) -> None:
        """Initialize with message and transition context.

        Args:
            message: Human-readable description.
            operation: Lifecycle operation that was attempted (e.g. 'complete').
            status: Current task status at the time of the attempt.
            error_code: Machine-readable code (subclasses override).
        """
        details: dict[str, Any] = {}
        if operation:
            details["operation"] = operation
        if status:
            details["status"] = status
        super().__init__(message, error_code, details)


class ClaimConflictException(InvalidStateException):
    """Raised when a concurrent request won the claim (conditional update matched no row)."""

    def __init__(self, task_id: str, claimed_by: str | None = None) -> None:
        message = (
            f"Task is already claimed by user {claimed_by}"
            if claimed_by
            else "Task was claimed by another request; reload and retry."
        )
        super().__init__(message, operation="claim", error_code="CLAIM_CONFLICT")
        self.details["task_id"] = task_id
        if claimed_by:
            self.details["claimed_by"] = claimed_by


class SqlNotConfiguredException(TaskDeskException):
    """Raised when an operation requires Postgres but DATABASE_URL is not configured."""

    def __init__(self) -> None:
        super().__init__(
            message="This operation requires a SQL database that is not configured.",
            error_code="SERVICE_UNAVAILABLE",
        )
