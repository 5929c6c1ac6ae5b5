"""Task repository. Returns application DTOs; every query is tenant-scoped."""

from __future__ import annotations

from collections.abc import Collection
from datetime import datetime
from typing import Any

from sqlalchemy import and_, case, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.dtos.task import TaskCreate, TaskFilter, TaskResult
from app.domain.enums import TaskPriority, TaskStatus
from app.infrastructure.persistence.models.task import Task, TaskHistory

# Columns the service may set through update(); keys are DTO field names.
_UPDATABLE = frozenset(
    {
        "status",
        "form_data",
        "assigned_user_id",
        "assigned_group_id",
        "claimed_by",
        "claimed_at",
        "escalation_level",
        "next_escalation_at",
        "sla_warned_at",
        "completed_by",
        "completed_at",
        "metadata",
    }
)

_PRIORITY_RANK = case(
    {p.value: p.rank for p in TaskPriority},
    value=Task.priority,
    else_=0,
)


def _create_to_task(d: TaskCreate) -> Task:
    """Map TaskCreate (write-model) to ORM Task for persistence."""
    return Task(
        id=d.id,
        tenant_id=d.tenant_id,
        type=d.type,
        title=d.title,
        description=d.description,
        priority=d.priority,
        status=d.status,
        form_schema=d.form_schema,
        context=d.context,
        assigned_user_id=d.assigned_user_id,
        assigned_group_id=d.assigned_group_id,
        due_at=d.due_at,
        warn_at=d.warn_at,
        escalation_config=d.escalation_config,
        escalation_level=0,
        next_escalation_at=d.next_escalation_at,
        workflow_id=d.workflow_id,
        workflow_run_id=d.workflow_run_id,
        task_metadata=d.metadata,
        created_at=d.created_at,
        updated_at=d.created_at,
    )


def _to_result(t: Task) -> TaskResult:
    """Map Task ORM to TaskResult DTO."""
    return TaskResult(
        id=t.id,
        tenant_id=t.tenant_id,
        type=t.type,
        title=t.title,
        description=t.description,
        priority=t.priority,
        status=t.status,
        form_schema=t.form_schema,
        form_data=t.form_data,
        context=t.context or {},
        assigned_user_id=t.assigned_user_id,
        assigned_group_id=t.assigned_group_id,
        claimed_by=t.claimed_by,
        claimed_at=t.claimed_at,
        due_at=t.due_at,
        warn_at=t.warn_at,
        escalation_config=t.escalation_config,
        escalation_level=t.escalation_level,
        next_escalation_at=t.next_escalation_at,
        sla_warned_at=t.sla_warned_at,
        workflow_id=t.workflow_id,
        workflow_run_id=t.workflow_run_id,
        completed_by=t.completed_by,
        completed_at=t.completed_at,
        created_at=t.created_at,
        updated_at=t.updated_at,
        deleted_at=t.deleted_at,
        metadata=t.task_metadata or {},
    )


def _status_values(statuses: Collection[TaskStatus | str]) -> list[str]:
    return [TaskStatus(s).value for s in statuses]


def _urgency_order() -> tuple[Any, ...]:
    """priority desc, due_at asc (no deadline last), created_at asc."""
    return (
        _PRIORITY_RANK.desc(),
        Task.due_at.asc().nulls_last(),
        Task.created_at.asc(),
        Task.id.asc(),
    )


class TaskRepository:
    """Task repository. Implements ITaskRepository."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    def _live(self, tenant_id: str) -> list[Any]:
        return [Task.tenant_id == tenant_id, Task.deleted_at.is_(None)]

    async def _get_orm(
        self, tenant_id: str, task_id: str, include_deleted: bool = False
    ) -> Task | None:
        q = select(Task).where(Task.id == task_id, Task.tenant_id == tenant_id)
        if not include_deleted:
            q = q.where(Task.deleted_at.is_(None))
        # Rows may have changed through bulk UPDATE in this session.
        q = q.execution_options(populate_existing=True)
        result = await self.db.execute(q)
        return result.scalar_one_or_none()

    async def create(self, data: TaskCreate) -> TaskResult:
        """Create a task and return the result DTO."""
        task = _create_to_task(data)
        self.db.add(task)
        await self.db.flush()
        await self.db.refresh(task)
        return _to_result(task)

    async def get_by_id(
        self, tenant_id: str, task_id: str, include_deleted: bool = False
    ) -> TaskResult | None:
        task = await self._get_orm(tenant_id, task_id, include_deleted)
        return _to_result(task) if task else None

    async def _conditional_update(
        self, tenant_id: str, task_id: str, criteria: list[Any], values: dict[str, Any]
    ) -> TaskResult | None:
        """UPDATE ... WHERE criteria; re-read the row when exactly one matched."""
        stmt = (
            update(Task)
            .where(Task.id == task_id, *self._live(tenant_id), *criteria)
            .values(**values, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        if result.rowcount != 1:
            return None
        return await self.get_by_id(tenant_id, task_id)

    async def update(
        self, tenant_id: str, task_id: str, values: dict[str, Any]
    ) -> TaskResult | None:
        unknown = set(values) - _UPDATABLE
        if unknown:
            raise ValueError(f"Cannot update task columns: {sorted(unknown)}")
        columns = dict(values)
        if "metadata" in columns:
            columns["task_metadata"] = columns.pop("metadata")
        return await self._conditional_update(tenant_id, task_id, [], columns)

    async def claim(
        self,
        tenant_id: str,
        task_id: str,
        user_id: str,
        claimed_at: datetime,
        from_statuses: Collection[TaskStatus],
    ) -> TaskResult | None:
        """Set claimed_by only if still unclaimed and claimable (single UPDATE)."""
        return await self._conditional_update(
            tenant_id,
            task_id,
            [Task.claimed_by.is_(None), Task.status.in_(_status_values(from_statuses))],
            {
                "claimed_by": user_id,
                "claimed_at": claimed_at,
                "status": TaskStatus.IN_PROGRESS.value,
            },
        )

    async def unclaim(
        self,
        tenant_id: str,
        task_id: str,
        user_id: str,
        from_statuses: Collection[TaskStatus],
    ) -> TaskResult | None:
        return await self._conditional_update(
            tenant_id,
            task_id,
            [Task.claimed_by == user_id, Task.status.in_(_status_values(from_statuses))],
            {
                "claimed_by": None,
                "claimed_at": None,
                "status": TaskStatus.ASSIGNED.value,
            },
        )

    async def soft_delete(self, tenant_id: str, task_id: str, deleted_at: datetime) -> bool:
        stmt = (
            update(Task)
            .where(Task.id == task_id, *self._live(tenant_id))
            .values(deleted_at=deleted_at)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def restore(self, tenant_id: str, task_id: str) -> bool:
        stmt = (
            update(Task)
            .where(
                Task.id == task_id,
                Task.tenant_id == tenant_id,
                Task.deleted_at.is_not(None),
            )
            .values(deleted_at=None)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def hard_delete(self, tenant_id: str, task_id: str) -> bool:
        await self.db.execute(
            delete(TaskHistory).where(
                TaskHistory.task_id == task_id, TaskHistory.tenant_id == tenant_id
            )
        )
        result = await self.db.execute(
            delete(Task).where(Task.id == task_id, Task.tenant_id == tenant_id)
        )
        return result.rowcount == 1

    async def list_tasks(self, tenant_id: str, task_filter: TaskFilter) -> list[TaskResult]:
        f = task_filter
        q = select(Task).where(Task.tenant_id == tenant_id)
        if not f.include_deleted:
            q = q.where(Task.deleted_at.is_(None))
        if f.statuses:
            q = q.where(Task.status.in_(_status_values(f.statuses)))
        if f.priority is not None:
            q = q.where(Task.priority == f.priority)
        if f.type is not None:
            q = q.where(Task.type == f.type)
        if f.assigned_user_id is not None:
            q = q.where(Task.assigned_user_id == f.assigned_user_id)
        if f.assigned_group_id is not None:
            q = q.where(Task.assigned_group_id == f.assigned_group_id)
        if f.claimed_by is not None:
            q = q.where(Task.claimed_by == f.claimed_by)
        if f.workflow_id is not None:
            q = q.where(Task.workflow_id == f.workflow_id)
        if f.due_before is not None:
            q = q.where(Task.due_at < f.due_before)
        if f.due_after is not None:
            q = q.where(Task.due_at > f.due_after)
        if f.search:
            pattern = f"%{f.search}%"
            q = q.where(or_(Task.title.ilike(pattern), Task.description.ilike(pattern)))
        q = q.order_by(*_urgency_order()).offset(f.skip).limit(f.limit)
        result = await self.db.execute(q)
        return [_to_result(t) for t in result.scalars().all()]

    async def list_for_user(
        self,
        tenant_id: str,
        user_id: str,
        group_ids: Collection[str],
        statuses: Collection[TaskStatus],
    ) -> list[TaskResult]:
        visible = [Task.assigned_user_id == user_id, Task.claimed_by == user_id]
        if group_ids:
            visible.append(
                and_(Task.assigned_group_id.in_(list(group_ids)), Task.claimed_by.is_(None))
            )
        q = (
            select(Task)
            .where(
                *self._live(tenant_id),
                Task.status.in_(_status_values(statuses)),
                or_(*visible),
            )
            .order_by(*_urgency_order())
        )
        result = await self.db.execute(q)
        return [_to_result(t) for t in result.scalars().all()]

    async def list_overdue(
        self, tenant_id: str, now: datetime, statuses: Collection[TaskStatus], limit: int = 500
    ) -> list[TaskResult]:
        q = (
            select(Task)
            .where(
                *self._live(tenant_id),
                Task.status.in_(_status_values(statuses)),
                Task.due_at.is_not(None),
                Task.due_at < now,
            )
            .order_by(Task.due_at.asc())
            .limit(limit)
        )
        result = await self.db.execute(q)
        return [_to_result(t) for t in result.scalars().all()]

    async def list_needing_escalation(
        self, tenant_id: str, now: datetime, statuses: Collection[TaskStatus], limit: int = 500
    ) -> list[TaskResult]:
        """Tasks with escalation work due at now.

        A pending chain step is due once next_escalation_at has passed; with
        the chain done (or absent) a passed deadline triggers the default
        escalation.
        """
        q = (
            select(Task)
            .where(
                *self._live(tenant_id),
                Task.status.in_(_status_values(statuses)),
                or_(
                    Task.next_escalation_at <= now,
                    and_(
                        Task.next_escalation_at.is_(None),
                        Task.due_at.is_not(None),
                        Task.due_at <= now,
                    ),
                ),
            )
            .order_by(
                func.least(Task.next_escalation_at, Task.due_at).asc(),
                Task.created_at.asc(),
                Task.id.asc(),
            )
            .limit(limit)
        )
        result = await self.db.execute(q)
        return [_to_result(t) for t in result.scalars().all()]

    async def list_needing_warning(
        self, tenant_id: str, now: datetime, statuses: Collection[TaskStatus], limit: int = 500
    ) -> list[TaskResult]:
        q = (
            select(Task)
            .where(
                *self._live(tenant_id),
                Task.status.in_(_status_values(statuses)),
                Task.warn_at.is_not(None),
                Task.warn_at <= now,
                Task.due_at > now,
                Task.sla_warned_at.is_(None),
            )
            .order_by(Task.due_at.asc())
            .limit(limit)
        )
        result = await self.db.execute(q)
        return [_to_result(t) for t in result.scalars().all()]

    async def count_by_status(self, tenant_id: str) -> dict[str, int]:
        q = (
            select(Task.status, func.count())
            .where(*self._live(tenant_id))
            .group_by(Task.status)
        )
        result = await self.db.execute(q)
        return {status: count for status, count in result.all()}

    async def count_overdue(
        self, tenant_id: str, now: datetime, statuses: Collection[TaskStatus]
    ) -> int:
        q = select(func.count()).select_from(Task).where(
            *self._live(tenant_id),
            Task.status.in_(_status_values(statuses)),
            Task.due_at < now,
        )
        result = await self.db.execute(q)
        return result.scalar_one()

    async def list_tenant_ids_with_open_tasks(
        self, statuses: Collection[TaskStatus]
    ) -> list[str]:
        q = (
            select(Task.tenant_id)
            .where(Task.deleted_at.is_(None), Task.status.in_(_status_values(statuses)))
            .distinct()
            .order_by(Task.tenant_id)
        )
        result = await self.db.execute(q)
        return list(result.scalars().all())
