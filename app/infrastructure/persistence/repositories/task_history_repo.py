"""Task history repository (append-only). Returns application DTOs."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.dtos.task import TaskHistoryCreate, TaskHistoryResult
from app.infrastructure.persistence.models.task import TaskHistory


def _to_result(h: TaskHistory) -> TaskHistoryResult:
    """Map TaskHistory ORM to TaskHistoryResult DTO."""
    return TaskHistoryResult(
        id=h.id,
        tenant_id=h.tenant_id,
        task_id=h.task_id,
        action=h.action,
        user_id=h.user_id,
        data=h.data or {},
        created_at=h.created_at,
    )


class TaskHistoryRepository:
    """Task history repository. Implements ITaskHistoryRepository (no update/delete)."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def append(self, entry: TaskHistoryCreate) -> TaskHistoryResult:
        row = TaskHistory(
            id=entry.id,
            tenant_id=entry.tenant_id,
            task_id=entry.task_id,
            action=entry.action,
            user_id=entry.user_id,
            data=entry.data,
            created_at=entry.created_at,
        )
        self.db.add(row)
        await self.db.flush()
        return _to_result(row)

    async def list_for_task(
        self, tenant_id: str, task_id: str, newest_first: bool = False
    ) -> list[TaskHistoryResult]:
        if newest_first:
            order = (TaskHistory.created_at.desc(), TaskHistory.id.desc())
        else:
            order = (TaskHistory.created_at.asc(), TaskHistory.id.asc())
        q = (
            select(TaskHistory)
            .where(TaskHistory.tenant_id == tenant_id, TaskHistory.task_id == task_id)
            .order_by(*order)
        )
        result = await self.db.execute(q)
        return [_to_result(h) for h in result.scalars().all()]
