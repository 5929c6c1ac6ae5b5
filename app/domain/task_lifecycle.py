"""Task lifecycle transition table.

Each lifecycle operation lists the statuses it may start from. The task
service checks legality here before touching the store; the repository's
conditional updates (claim/unclaim) reuse the same source sets.
"""

from app.domain.enums import TaskStatus
from app.domain.exceptions import InvalidStateException

OPEN_STATUSES: frozenset[TaskStatus] = frozenset(
    {TaskStatus.PENDING, TaskStatus.ASSIGNED, TaskStatus.IN_PROGRESS}
)

LEGAL_SOURCES: dict[str, frozenset[TaskStatus]] = {
    "claim": frozenset({TaskStatus.PENDING, TaskStatus.ASSIGNED}),
    "unclaim": frozenset(
        {
            TaskStatus.PENDING,
            TaskStatus.ASSIGNED,
            TaskStatus.IN_PROGRESS,
            TaskStatus.ESCALATED,
        }
    ),
    "complete": OPEN_STATUSES,
    "reassign": OPEN_STATUSES | {TaskStatus.ESCALATED},
    "cancel": OPEN_STATUSES | {TaskStatus.ESCALATED},
    "expire": OPEN_STATUSES,
    "escalate": OPEN_STATUSES,
}


def can_transition(operation: str, status: str | TaskStatus) -> bool:
    """Return True if operation may run on a task currently in status."""
    sources = LEGAL_SOURCES.get(operation)
    if sources is None:
        raise ValueError(f"Unknown lifecycle operation: {operation!r}")
    return TaskStatus(status) in sources


def ensure_transition(operation: str, status: str | TaskStatus) -> None:
    """Raise InvalidStateException if operation is illegal for status."""
    if not can_transition(operation, status):
        value = TaskStatus(status).value
        raise InvalidStateException(
            f"Cannot {operation} task with status {value}",
            operation=operation,
            status=value,
        )


def status_for_assignment(user_id: str | None, group_id: str | None) -> TaskStatus:
    """Status a task takes after create/reassign: assigned if any target, else pending."""
    return TaskStatus.ASSIGNED if (user_id or group_id) else TaskStatus.PENDING
