"""Service interfaces (ports) for the application layer.

Protocols define contracts for outbound collaborators (DIP). Delivery is
best-effort: implementations return False (or raise) on failure and the
task service logs it without failing the operation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from app.application.dtos.task import TaskResult


# Notification interface
class ITaskNotifier(Protocol):
    """Protocol for task notifications (e-mail, chat, pub/sub). Each returns success."""

    async def task_created(self, task: TaskResult) -> bool:
        """A task was created."""

    async def task_assigned(self, task: TaskResult, user_id: str) -> bool:
        """A task was assigned to user_id."""

    async def task_escalated(self, task: TaskResult, reason: str | None = None) -> bool:
        """A task was escalated (or an escalation notify step fired)."""

    async def task_completed(self, task: TaskResult) -> bool:
        """A task was completed."""

    async def sla_warning(self, task: TaskResult, minutes_remaining: int) -> bool:
        """A task entered its SLA warning window."""

    async def sla_breach(self, task: TaskResult) -> bool:
        """A task passed its deadline."""


# Durable workflow signaling interface
class IWorkflowSignaler(Protocol):
    """Protocol for signaling the workflow run a task is linked to."""

    async def signal(
        self,
        workflow_id: str,
        run_id: str,
        signal_name: str,
        payload: dict[str, Any],
    ) -> bool:
        """Deliver one named signal with a JSON payload. Return True on success."""
