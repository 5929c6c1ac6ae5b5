"""Group membership lookup for the assignment resolver."""

from __future__ import annotations

from collections.abc import Collection

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.application.dtos.group import GroupInfo
from app.domain.enums import AssignmentStrategyType
from app.domain.task_lifecycle import OPEN_STATUSES
from app.infrastructure.persistence.models.group import TaskGroup, TaskGroupMember
from app.infrastructure.persistence.models.task import Task
from app.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

# Strategy names used by older group records.
_LEGACY_STRATEGIES = {
    "least_loaded": AssignmentStrategyType.LOAD_BALANCED,
    "manual": AssignmentStrategyType.DIRECT,
    "random": AssignmentStrategyType.ROUND_ROBIN,
}


def map_group_strategy(value: str | None) -> AssignmentStrategyType:
    """Stored strategy name to AssignmentStrategyType (unknown -> round_robin)."""
    if value in AssignmentStrategyType.values():
        return AssignmentStrategyType(value)
    if value in _LEGACY_STRATEGIES:
        return _LEGACY_STRATEGIES[value]
    logger.warning("Unknown group assignment strategy %r, using round_robin", value)
    return AssignmentStrategyType.ROUND_ROBIN


def _to_info(g: TaskGroup) -> GroupInfo:
    return GroupInfo(
        id=g.id,
        tenant_id=g.tenant_id,
        name=g.name,
        assignment_strategy=map_group_strategy(g.assignment_strategy),
        is_assignable=g.is_assignable,
    )


class SqlGroupMemberLookup:
    """Implements IGroupMemberLookup with its own short read-only sessions.

    The task service resolves assignments before opening its transaction,
    so a lookup never holds a second pooled connection next to the task
    unit of work.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_group(self, tenant_id: str, group_id: str) -> GroupInfo | None:
        async with self._session_factory() as db:
            result = await db.execute(
                select(TaskGroup).where(
                    TaskGroup.id == group_id,
                    TaskGroup.tenant_id == tenant_id,
                    TaskGroup.deleted_at.is_(None),
                )
            )
            group = result.scalar_one_or_none()
            return _to_info(group) if group else None

    async def list_active_member_ids(self, tenant_id: str, group_id: str) -> list[str]:
        q = (
            select(TaskGroupMember.user_id)
            .join(TaskGroup, TaskGroup.id == TaskGroupMember.group_id)
            .where(
                TaskGroup.id == group_id,
                TaskGroup.tenant_id == tenant_id,
                TaskGroup.deleted_at.is_(None),
                TaskGroup.is_assignable.is_(True),
                TaskGroupMember.is_active.is_(True),
            )
            .order_by(TaskGroupMember.joined_at.asc(), TaskGroupMember.id.asc())
        )
        async with self._session_factory() as db:
            result = await db.execute(q)
            return list(result.scalars().all())

    async def count_active_tasks(
        self, tenant_id: str, user_ids: Collection[str]
    ) -> dict[str, int]:
        counts = {user_id: 0 for user_id in user_ids}
        if not counts:
            return counts
        q = (
            select(Task.assigned_user_id, func.count())
            .where(
                Task.tenant_id == tenant_id,
                Task.deleted_at.is_(None),
                Task.assigned_user_id.in_(list(counts)),
                Task.status.in_([s.value for s in OPEN_STATUSES]),
            )
            .group_by(Task.assigned_user_id)
        )
        async with self._session_factory() as db:
            result = await db.execute(q)
            for user_id, count in result.all():
                counts[user_id] = count
        return counts
