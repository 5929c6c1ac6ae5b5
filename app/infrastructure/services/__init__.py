"""Infrastructure implementations of application service interfaces."""

from app.infrastructure.services.task_notification_service import LogOnlyTaskNotifier
from app.infrastructure.services.workflow_signaler import HttpWorkflowSignaler

__all__ = [
    "HttpWorkflowSignaler",
    "LogOnlyTaskNotifier",
]
