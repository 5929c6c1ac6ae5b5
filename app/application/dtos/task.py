"""DTOs for human tasks and their history (no dependency on ORM)."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from app.domain.enums import AssignmentStrategyType, TaskPriority, TaskStatus


@dataclass(frozen=True)
class AssignmentTarget:
    """Who a task should go to: a user, a group, both, or neither (unassigned)."""

    user_id: str | None = None
    group_id: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.user_id and not self.group_id

    def to_payload(self) -> dict[str, str | None]:
        """JSON shape used in history data and workflow signals."""
        return {"userId": self.user_id, "groupId": self.group_id}


@dataclass(frozen=True)
class ResolvedAssignment:
    """Concrete assignment produced by the assignment resolver."""

    user_id: str | None
    group_id: str | None
    strategy: AssignmentStrategyType = AssignmentStrategyType.DIRECT

    @property
    def is_empty(self) -> bool:
        return not self.user_id and not self.group_id


@dataclass(frozen=True)
class SlaConfig:
    """SLA input on create: deadline and warn_before are durations ("30m", "2d").

    deadline may also be an absolute datetime. escalation is the raw chain
    (list of step dicts); it is validated and normalized before storage.
    on_breach is informational ("escalate", "notify" or "cancel").
    """

    deadline: str | datetime
    warn_before: str | None = None
    escalation: list[dict[str, Any]] | None = None
    on_breach: str = "notify"


@dataclass(frozen=True)
class ComputedSla:
    """Resolved SLA timestamps for a new task."""

    due_at: datetime
    warn_at: datetime | None
    escalation_config: list[dict[str, Any]] | None
    on_breach: str


@dataclass(frozen=True)
class CreateTaskInput:
    """Input for TaskService.create."""

    title: str
    form_schema: dict[str, Any]
    assign_to: AssignmentTarget = field(default_factory=AssignmentTarget)
    description: str | None = None
    type: str = "human_task"
    priority: TaskPriority = TaskPriority.MEDIUM
    context: dict[str, Any] | None = None
    conversation_id: str | None = None
    sla: SlaConfig | None = None
    workflow_id: str | None = None
    workflow_run_id: str | None = None
    metadata: dict[str, Any] | None = None


@dataclass(frozen=True)
class TaskCreate:
    """Write-model for a new task row. The service builds this; the repo persists it."""

    id: str
    tenant_id: str
    type: str
    title: str
    description: str | None
    priority: str
    status: str
    form_schema: dict[str, Any]
    context: dict[str, Any]
    assigned_user_id: str | None
    assigned_group_id: str | None
    due_at: datetime | None
    warn_at: datetime | None
    escalation_config: list[dict[str, Any]] | None
    workflow_id: str | None
    workflow_run_id: str | None
    metadata: dict[str, Any]
    created_at: datetime
    next_escalation_at: datetime | None = None


@dataclass(frozen=True)
class TaskResult:
    """Task read-model (result of get_by_id, list_*, create, update, claim)."""

    id: str
    tenant_id: str
    type: str
    title: str
    description: str | None
    priority: str
    status: str
    form_schema: dict[str, Any]
    form_data: dict[str, Any] | None
    context: dict[str, Any]
    assigned_user_id: str | None
    assigned_group_id: str | None
    claimed_by: str | None
    claimed_at: datetime | None
    due_at: datetime | None
    warn_at: datetime | None
    escalation_config: list[dict[str, Any]] | None
    escalation_level: int
    sla_warned_at: datetime | None
    workflow_id: str | None
    workflow_run_id: str | None
    completed_by: str | None
    completed_at: datetime | None
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None
    next_escalation_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def task_status(self) -> TaskStatus:
        return TaskStatus(self.status)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def is_linked(self) -> bool:
        """True when the task is tied to a workflow run that can be signaled."""
        return bool(self.workflow_id and self.workflow_run_id)

    @property
    def assignment(self) -> AssignmentTarget:
        return AssignmentTarget(
            user_id=self.assigned_user_id, group_id=self.assigned_group_id
        )


@dataclass(frozen=True)
class TaskHistoryCreate:
    """Write-model for a history entry (append-only)."""

    id: str
    tenant_id: str
    task_id: str
    action: str
    user_id: str | None
    data: dict[str, Any]
    created_at: datetime


@dataclass(frozen=True)
class TaskHistoryResult:
    """Task history read-model."""

    id: str
    tenant_id: str
    task_id: str
    action: str
    user_id: str | None
    data: dict[str, Any]
    created_at: datetime


@dataclass(frozen=True)
class TaskFilter:
    """Filters for TaskService.list_tasks. Empty filter lists all non-deleted tasks."""

    statuses: tuple[str, ...] = ()
    priority: str | None = None
    type: str | None = None
    assigned_user_id: str | None = None
    assigned_group_id: str | None = None
    claimed_by: str | None = None
    workflow_id: str | None = None
    due_before: datetime | None = None
    due_after: datetime | None = None
    search: str | None = None
    include_deleted: bool = False
    skip: int = 0
    limit: int = 100


@dataclass(frozen=True)
class TaskStats:
    """Per-tenant task counts (status counts exclude soft-deleted tasks)."""

    total: int
    by_status: dict[str, int]
    overdue: int


@dataclass(frozen=True)
class SlaStatus:
    """Point-in-time SLA state of a task with a deadline."""

    due_at: datetime
    breached: bool
    warning: bool
    time_remaining_ms: int
    time_remaining_formatted: str
