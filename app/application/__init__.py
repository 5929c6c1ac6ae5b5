"""Application layer: interfaces, services, use cases.

Depends only on domain and protocol definitions (DIP).
Infrastructure implements the interfaces (store, notifier, signaler, group lookup).
"""

from app.application.interfaces import (
    IGroupMemberLookup,
    ITaskHistoryRepository,
    ITaskNotifier,
    ITaskRepository,
    ITaskStore,
    ITaskUnitOfWork,
    IWorkflowSignaler,
)
from app.application.services.task_service import TaskService
from app.application.use_cases.sla import RunSlaSweepUseCase

__all__ = [
    "IGroupMemberLookup",
    "ITaskHistoryRepository",
    "ITaskNotifier",
    "ITaskRepository",
    "ITaskStore",
    "ITaskUnitOfWork",
    "IWorkflowSignaler",
    "RunSlaSweepUseCase",
    "TaskService",
]
