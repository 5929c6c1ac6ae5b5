"""Task notification: log-only notifier (default when no channel is configured)."""

from __future__ import annotations

from app.application.dtos.task import TaskResult
from app.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class LogOnlyTaskNotifier:
    """ITaskNotifier implementation that logs instead of sending.

    Production can swap in RedisTaskNotifier or a chat/e-mail implementation.
    """

    async def task_created(self, task: TaskResult) -> bool:
        logger.info(
            "Task notify: created %s (%r, tenant %s)", task.id, task.title[:80], task.tenant_id
        )
        return True

    async def task_assigned(self, task: TaskResult, user_id: str) -> bool:
        logger.info("Task notify: %s assigned to user %s", task.id, user_id)
        return True

    async def task_escalated(self, task: TaskResult, reason: str | None = None) -> bool:
        logger.info(
            "Task notify: %s escalated (level %d): %s", task.id, task.escalation_level, reason
        )
        return True

    async def task_completed(self, task: TaskResult) -> bool:
        logger.info("Task notify: %s completed by %s", task.id, task.completed_by)
        return True

    async def sla_warning(self, task: TaskResult, minutes_remaining: int) -> bool:
        logger.info(
            "Task notify: %s SLA warning, %d minutes remaining", task.id, minutes_remaining
        )
        return True

    async def sla_breach(self, task: TaskResult) -> bool:
        logger.warning("Task notify: %s SLA breached (due %s)", task.id, task.due_at)
        return True
