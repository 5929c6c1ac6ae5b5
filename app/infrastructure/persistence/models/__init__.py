"""Persistence models: ORM entities and mixins."""

from app.infrastructure.persistence.models.group import TaskGroup, TaskGroupMember
from app.infrastructure.persistence.models.mixins import (
    MultiTenantModel,
    SoftDeleteMixin,
    TenantMixin,
    TimestampMixin,
)
from app.infrastructure.persistence.models.task import Task, TaskHistory

__all__ = [
    "MultiTenantModel",
    "SoftDeleteMixin",
    "Task",
    "TaskGroup",
    "TaskGroupMember",
    "TaskHistory",
    "TenantMixin",
    "TimestampMixin",
]
