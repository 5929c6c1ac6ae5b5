"""Domain enumerations for the task service.

Enums represent fixed sets of domain values (task status, priority,
escalation actions, history actions).
"""

from enum import Enum


class _ValuesMixin:
    """Mixin that adds a values() classmethod to str Enums."""

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings."""
        return [member.value for member in cls]


class TaskStatus(_ValuesMixin, str, Enum):
    """Task lifecycle status. COMPLETED, CANCELLED and EXPIRED are terminal."""

    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    ESCALATED = "escalated"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.CANCELLED, TaskStatus.EXPIRED)


class TaskPriority(_ValuesMixin, str, Enum):
    """Task priority. rank orders them for listings (urgent first)."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    TaskPriority.LOW: 0,
    TaskPriority.MEDIUM: 1,
    TaskPriority.HIGH: 2,
    TaskPriority.URGENT: 3,
}


class EscalationAction(_ValuesMixin, str, Enum):
    """What an escalation chain step does once its threshold elapses."""

    NOTIFY = "notify"
    REASSIGN = "reassign"
    ESCALATE = "escalate"


class AssignmentStrategyType(_ValuesMixin, str, Enum):
    """How a concrete member is picked for a group assignment."""

    ROUND_ROBIN = "round_robin"
    LOAD_BALANCED = "load_balanced"
    DIRECT = "direct"


class TaskHistoryAction(_ValuesMixin, str, Enum):
    """History entry actions (one per mutating operation)."""

    CREATED = "created"
    CLAIMED = "claimed"
    UNCLAIMED = "unclaimed"
    COMPLETED = "completed"
    REASSIGNED = "reassigned"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    ESCALATED = "escalated"
    ESCALATION_NOTIFIED = "escalation_notified"
    SLA_WARNING = "sla_warning"
    COMMENTED = "commented"
    DELETED = "deleted"
    RESTORED = "restored"
