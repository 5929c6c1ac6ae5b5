"""Persistence repositories. Re-exports for dependency injection."""

from app.infrastructure.persistence.repositories.group_repo import (
    SqlGroupMemberLookup,
    map_group_strategy,
)
from app.infrastructure.persistence.repositories.task_history_repo import (
    TaskHistoryRepository,
)
from app.infrastructure.persistence.repositories.task_repo import TaskRepository

__all__ = [
    "SqlGroupMemberLookup",
    "TaskHistoryRepository",
    "TaskRepository",
    "map_group_strategy",
]
