"""Repository interfaces (ports) for the application layer.

Protocols define contracts that infrastructure implementations must fulfill (DIP).
All types reference application DTOs only; no infrastructure imports.
Every task query is tenant-scoped; a task of another tenant behaves as missing.
"""

from __future__ import annotations

from collections.abc import Collection
from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from app.application.dtos.group import GroupInfo
    from app.application.dtos.task import (
        TaskCreate,
        TaskFilter,
        TaskHistoryCreate,
        TaskHistoryResult,
        TaskResult,
    )
    from app.domain.enums import TaskStatus


# Task repository interface
class ITaskRepository(Protocol):
    """Protocol for task repository (DIP)."""

    async def create(self, data: TaskCreate) -> TaskResult:
        """Insert a new task."""

    async def get_by_id(
        self, tenant_id: str, task_id: str, include_deleted: bool = False
    ) -> TaskResult | None:
        """Return task by id in tenant (soft-deleted hidden unless include_deleted)."""

    async def update(
        self, tenant_id: str, task_id: str, values: dict[str, Any]
    ) -> TaskResult | None:
        """Set columns on a non-deleted task; return updated task or None if missing."""

    async def claim(
        self,
        tenant_id: str,
        task_id: str,
        user_id: str,
        claimed_at: datetime,
        from_statuses: Collection[TaskStatus],
    ) -> TaskResult | None:
        """Atomically claim: set claimed_by/claimed_at and status in_progress only if
        claimed_by is null and status is in from_statuses. None when no row matched."""

    async def unclaim(
        self,
        tenant_id: str,
        task_id: str,
        user_id: str,
        from_statuses: Collection[TaskStatus],
    ) -> TaskResult | None:
        """Atomically clear the claim held by user_id (status becomes assigned).
        None when no row matched."""

    async def soft_delete(self, tenant_id: str, task_id: str, deleted_at: datetime) -> bool:
        """Set deleted_at on a live task. Return True if a row changed."""

    async def restore(self, tenant_id: str, task_id: str) -> bool:
        """Clear deleted_at. Return True if a row changed."""

    async def hard_delete(self, tenant_id: str, task_id: str) -> bool:
        """Physically delete task and its history (administrative cleanup)."""

    async def list_tasks(self, tenant_id: str, task_filter: TaskFilter) -> list[TaskResult]:
        """Return tasks matching filter (priority desc, due_at asc, created_at asc)."""

    async def list_for_user(
        self,
        tenant_id: str,
        user_id: str,
        group_ids: Collection[str],
        statuses: Collection[TaskStatus],
    ) -> list[TaskResult]:
        """Tasks assigned to or claimed by user, plus unclaimed tasks of the given groups."""

    async def list_overdue(
        self, tenant_id: str, now: datetime, statuses: Collection[TaskStatus], limit: int = 500
    ) -> list[TaskResult]:
        """Open tasks with due_at < now (oldest due first)."""

    async def list_needing_escalation(
        self, tenant_id: str, now: datetime, statuses: Collection[TaskStatus], limit: int = 500
    ) -> list[TaskResult]:
        """Tasks whose next_escalation_at has passed, or past due with no pending step."""

    async def list_needing_warning(
        self, tenant_id: str, now: datetime, statuses: Collection[TaskStatus], limit: int = 500
    ) -> list[TaskResult]:
        """Open tasks with warn_at <= now < due_at and no warning sent yet."""

    async def count_by_status(self, tenant_id: str) -> dict[str, int]:
        """Non-deleted task counts per status."""

    async def count_overdue(
        self, tenant_id: str, now: datetime, statuses: Collection[TaskStatus]
    ) -> int:
        """Number of open tasks past due."""

    async def list_tenant_ids_with_open_tasks(
        self, statuses: Collection[TaskStatus]
    ) -> list[str]:
        """Distinct tenants having non-deleted tasks in statuses (for all-tenant sweeps)."""


# Task history repository interface
class ITaskHistoryRepository(Protocol):
    """Protocol for append-only task history (DIP)."""

    async def append(self, entry: TaskHistoryCreate) -> TaskHistoryResult:
        """Insert one history entry. There is no update or delete."""

    async def list_for_task(
        self, tenant_id: str, task_id: str, newest_first: bool = False
    ) -> list[TaskHistoryResult]:
        """Return entries for task ordered by created_at (then id)."""


class ITaskUnitOfWork(Protocol):
    """Repositories sharing one transaction."""

    tasks: ITaskRepository
    history: ITaskHistoryRepository


class ITaskStore(Protocol):
    """Explicitly constructed store handle; each transaction() is one unit of work.

    Commits when the block exits normally, rolls back on exception.
    """

    def transaction(self) -> AbstractAsyncContextManager[ITaskUnitOfWork]:
        """Open a transaction and yield its unit of work."""


# Group membership lookup (assignment resolver collaborator)
class IGroupMemberLookup(Protocol):
    """Protocol for reading groups, members and member workload."""

    async def get_group(self, tenant_id: str, group_id: str) -> GroupInfo | None:
        """Return live group in tenant, or None."""

    async def list_active_member_ids(self, tenant_id: str, group_id: str) -> list[str]:
        """Active members of an assignable live group, ordered by join time."""

    async def count_active_tasks(
        self, tenant_id: str, user_ids: Collection[str]
    ) -> dict[str, int]:
        """Open, non-deleted task count per user (users with none map to 0)."""
