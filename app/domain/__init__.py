"""Domain layer: enums, exceptions, and the task lifecycle transition table.

No dependencies on infrastructure. Used by application and infrastructure
layers.
"""

from app.domain.enums import (
    AssignmentStrategyType,
    EscalationAction,
    TaskHistoryAction,
    TaskPriority,
    TaskStatus,
)
from app.domain.exceptions import (
    ClaimConflictException,
    DurationParseException,
    InvalidStateException,
    ResourceNotFoundException,
    SqlNotConfiguredException,
    TaskDeskException,
    ValidationException,
)
from app.domain.task_lifecycle import (
    LEGAL_SOURCES,
    OPEN_STATUSES,
    can_transition,
    ensure_transition,
    status_for_assignment,
)

__all__ = [
    # Enums
    "AssignmentStrategyType",
    "EscalationAction",
    "TaskHistoryAction",
    "TaskPriority",
    "TaskStatus",
    # Exceptions
    "ClaimConflictException",
    "DurationParseException",
    "InvalidStateException",
    "ResourceNotFoundException",
    "SqlNotConfiguredException",
    "TaskDeskException",
    "ValidationException",
    # Lifecycle
    "LEGAL_SOURCES",
    "OPEN_STATUSES",
    "can_transition",
    "ensure_transition",
    "status_for_assignment",
]
