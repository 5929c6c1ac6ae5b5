"""Application services: durations, forms, assignment, escalation, task lifecycle."""

from app.application.services.assignment_resolver import (
    AssignmentResolver,
    AssignmentStrategy,
    DirectStrategy,
    LoadBalancedStrategy,
    RoundRobinStrategy,
)
from app.application.services.escalation_processor import EscalationProcessor
from app.application.services.task_service import (
    NoOpTaskNotifier,
    TaskService,
    TaskSignalNames,
)

__all__ = [
    "AssignmentResolver",
    "AssignmentStrategy",
    "DirectStrategy",
    "EscalationProcessor",
    "LoadBalancedStrategy",
    "NoOpTaskNotifier",
    "RoundRobinStrategy",
    "TaskService",
    "TaskSignalNames",
]
