"""Application DTOs (no ORM dependency)."""

from app.application.dtos.escalation import ApplicableStep, EscalationResult
from app.application.dtos.form import FormValidationResult
from app.application.dtos.group import GroupInfo
from app.application.dtos.sla_sweep import SlaSweepResult
from app.application.dtos.task import (
    AssignmentTarget,
    ComputedSla,
    CreateTaskInput,
    ResolvedAssignment,
    SlaConfig,
    SlaStatus,
    TaskCreate,
    TaskFilter,
    TaskHistoryCreate,
    TaskHistoryResult,
    TaskResult,
    TaskStats,
)

__all__ = [
    "ApplicableStep",
    "AssignmentTarget",
    "ComputedSla",
    "CreateTaskInput",
    "EscalationResult",
    "FormValidationResult",
    "GroupInfo",
    "ResolvedAssignment",
    "SlaConfig",
    "SlaStatus",
    "SlaSweepResult",
    "TaskCreate",
    "TaskFilter",
    "TaskHistoryCreate",
    "TaskHistoryResult",
    "TaskResult",
    "TaskStats",
]
