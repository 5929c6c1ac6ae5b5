"""In-memory implementations of the task ports for unit tests.

InMemoryTaskStore keeps rows in dicts and undoes a transaction's writes when
its block raises. claim/unclaim check and write in one step (no await in
between), like a conditional UPDATE.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Collection
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from typing import Any

from app.application.dtos.group import GroupInfo
from app.application.dtos.task import (
    TaskCreate,
    TaskFilter,
    TaskHistoryCreate,
    TaskHistoryResult,
    TaskResult,
)
from app.domain.enums import AssignmentStrategyType, TaskPriority, TaskStatus
from app.domain.task_lifecycle import OPEN_STATUSES

T0 = datetime(2025, 3, 1, 9, 0, 0, tzinfo=UTC)

TEXT_FORM = {
    "fields": {
        "decision": {
            "type": "select",
            "label": "Decision",
            "required": True,
            "options": [
                {"value": "approve", "label": "Approve"},
                {"value": "reject", "label": "Reject"},
            ],
        },
        "comment": {"type": "textarea", "validation": {"max": 200}},
    }
}


class FakeClock:
    """Mutable clock passed to TaskService(clock=...)."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def _values(statuses: Collection[TaskStatus | str]) -> set[str]:
    return {TaskStatus(s).value for s in statuses}


def _urgency_key(t: TaskResult) -> tuple[Any, ...]:
    return (
        -TaskPriority(t.priority).rank,
        t.due_at is None,
        t.due_at or datetime.min,
        t.created_at,
        t.id,
    )


class InMemoryTaskRepository:
    def __init__(self, store: InMemoryTaskStore, uow: InMemoryUnitOfWork) -> None:
        self._store = store
        self._uow = uow

    def _live(self, tenant_id: str) -> list[TaskResult]:
        return [
            t
            for t in self._store.tasks.values()
            if t.tenant_id == tenant_id and t.deleted_at is None
        ]

    def _write(self, task: TaskResult) -> TaskResult:
        self._uow.remember(task.id)
        self._store.tasks[task.id] = task
        return task

    async def create(self, data: TaskCreate) -> TaskResult:
        task = TaskResult(
            id=data.id,
            tenant_id=data.tenant_id,
            type=data.type,
            title=data.title,
            description=data.description,
            priority=data.priority,
            status=data.status,
            form_schema=data.form_schema,
            form_data=None,
            context=data.context,
            assigned_user_id=data.assigned_user_id,
            assigned_group_id=data.assigned_group_id,
            claimed_by=None,
            claimed_at=None,
            due_at=data.due_at,
            warn_at=data.warn_at,
            escalation_config=data.escalation_config,
            escalation_level=0,
            sla_warned_at=None,
            workflow_id=data.workflow_id,
            workflow_run_id=data.workflow_run_id,
            completed_by=None,
            completed_at=None,
            created_at=data.created_at,
            updated_at=data.created_at,
            metadata=data.metadata,
            next_escalation_at=data.next_escalation_at,
        )
        return self._write(task)

    async def get_by_id(
        self, tenant_id: str, task_id: str, include_deleted: bool = False
    ) -> TaskResult | None:
        # Yield so concurrent operations interleave between read and write.
        await asyncio.sleep(0)
        task = self._store.tasks.get(task_id)
        if task is None or task.tenant_id != tenant_id:
            return None
        if task.deleted_at is not None and not include_deleted:
            return None
        return task

    def _current(self, tenant_id: str, task_id: str) -> TaskResult | None:
        task = self._store.tasks.get(task_id)
        if task is None or task.tenant_id != tenant_id or task.deleted_at is not None:
            return None
        return task

    async def update(
        self, tenant_id: str, task_id: str, values: dict[str, Any]
    ) -> TaskResult | None:
        task = self._current(tenant_id, task_id)
        if task is None:
            return None
        return self._write(replace(task, **values, updated_at=self._store.clock()))

    async def claim(
        self,
        tenant_id: str,
        task_id: str,
        user_id: str,
        claimed_at: datetime,
        from_statuses: Collection[TaskStatus],
    ) -> TaskResult | None:
        task = self._current(tenant_id, task_id)
        if task is None or task.claimed_by is not None or task.status not in _values(from_statuses):
            return None
        return self._write(
            replace(
                task,
                claimed_by=user_id,
                claimed_at=claimed_at,
                status=TaskStatus.IN_PROGRESS.value,
                updated_at=self._store.clock(),
            )
        )

    async def unclaim(
        self,
        tenant_id: str,
        task_id: str,
        user_id: str,
        from_statuses: Collection[TaskStatus],
    ) -> TaskResult | None:
        task = self._current(tenant_id, task_id)
        if task is None or task.claimed_by != user_id or task.status not in _values(from_statuses):
            return None
        return self._write(
            replace(
                task,
                claimed_by=None,
                claimed_at=None,
                status=TaskStatus.ASSIGNED.value,
                updated_at=self._store.clock(),
            )
        )

    async def soft_delete(self, tenant_id: str, task_id: str, deleted_at: datetime) -> bool:
        task = self._current(tenant_id, task_id)
        if task is None:
            return False
        self._write(replace(task, deleted_at=deleted_at))
        return True

    async def restore(self, tenant_id: str, task_id: str) -> bool:
        task = self._store.tasks.get(task_id)
        if task is None or task.tenant_id != tenant_id or task.deleted_at is None:
            return False
        self._write(replace(task, deleted_at=None))
        return True

    async def hard_delete(self, tenant_id: str, task_id: str) -> bool:
        task = self._store.tasks.get(task_id)
        if task is None or task.tenant_id != tenant_id:
            return False
        self._uow.remember(task_id)
        del self._store.tasks[task_id]
        return True

    async def list_tasks(self, tenant_id: str, task_filter: TaskFilter) -> list[TaskResult]:
        f = task_filter
        rows = [
            t
            for t in self._store.tasks.values()
            if t.tenant_id == tenant_id and (f.include_deleted or t.deleted_at is None)
        ]
        if f.statuses:
            rows = [t for t in rows if t.status in _values(f.statuses)]
        for attr in ("priority", "type", "assigned_user_id", "assigned_group_id", "claimed_by", "workflow_id"):
            wanted = getattr(f, attr)
            if wanted is not None:
                rows = [t for t in rows if getattr(t, attr) == wanted]
        if f.due_before is not None:
            rows = [t for t in rows if t.due_at is not None and t.due_at < f.due_before]
        if f.due_after is not None:
            rows = [t for t in rows if t.due_at is not None and t.due_at > f.due_after]
        if f.search:
            needle = f.search.lower()
            rows = [
                t
                for t in rows
                if needle in t.title.lower() or needle in (t.description or "").lower()
            ]
        rows.sort(key=_urgency_key)
        return rows[f.skip : f.skip + f.limit]

    async def list_for_user(
        self,
        tenant_id: str,
        user_id: str,
        group_ids: Collection[str],
        statuses: Collection[TaskStatus],
    ) -> list[TaskResult]:
        groups = set(group_ids)
        rows = [
            t
            for t in self._live(tenant_id)
            if t.status in _values(statuses)
            and (
                t.assigned_user_id == user_id
                or t.claimed_by == user_id
                or (t.assigned_group_id in groups and t.claimed_by is None)
            )
        ]
        return sorted(rows, key=_urgency_key)

    async def list_overdue(
        self, tenant_id: str, now: datetime, statuses: Collection[TaskStatus], limit: int = 500
    ) -> list[TaskResult]:
        rows = [
            t
            for t in self._live(tenant_id)
            if t.status in _values(statuses) and t.due_at is not None and t.due_at < now
        ]
        return sorted(rows, key=lambda t: t.due_at)[:limit]

    async def list_needing_escalation(
        self, tenant_id: str, now: datetime, statuses: Collection[TaskStatus], limit: int = 500
    ) -> list[TaskResult]:
        rows = [
            t
            for t in self._live(tenant_id)
            if t.status in _values(statuses)
            and (
                (t.next_escalation_at is not None and t.next_escalation_at <= now)
                or (t.next_escalation_at is None and t.due_at is not None and t.due_at <= now)
            )
        ]
        return sorted(
            rows,
            key=lambda t: (
                min(d for d in (t.next_escalation_at, t.due_at) if d is not None),
                t.created_at,
                t.id,
            ),
        )[:limit]

    async def list_needing_warning(
        self, tenant_id: str, now: datetime, statuses: Collection[TaskStatus], limit: int = 500
    ) -> list[TaskResult]:
        rows = [
            t
            for t in self._live(tenant_id)
            if t.status in _values(statuses)
            and t.warn_at is not None
            and t.warn_at <= now
            and t.due_at is not None
            and t.due_at > now
            and t.sla_warned_at is None
        ]
        return sorted(rows, key=lambda t: t.due_at)[:limit]

    async def count_by_status(self, tenant_id: str) -> dict[str, int]:
        counts: dict[str, int] = {}
        for t in self._live(tenant_id):
            counts[t.status] = counts.get(t.status, 0) + 1
        return counts

    async def count_overdue(
        self, tenant_id: str, now: datetime, statuses: Collection[TaskStatus]
    ) -> int:
        return len(await self.list_overdue(tenant_id, now, statuses, limit=10_000))

    async def list_tenant_ids_with_open_tasks(
        self, statuses: Collection[TaskStatus]
    ) -> list[str]:
        wanted = _values(statuses)
        return sorted(
            {
                t.tenant_id
                for t in self._store.tasks.values()
                if t.deleted_at is None and t.status in wanted
            }
        )


class InMemoryTaskHistoryRepository:
    def __init__(self, store: InMemoryTaskStore, uow: InMemoryUnitOfWork) -> None:
        self._store = store
        self._uow = uow

    async def append(self, entry: TaskHistoryCreate) -> TaskHistoryResult:
        result = TaskHistoryResult(
            id=entry.id,
            tenant_id=entry.tenant_id,
            task_id=entry.task_id,
            action=entry.action,
            user_id=entry.user_id,
            data=entry.data,
            created_at=entry.created_at,
        )
        self._uow.history_ids.append(result.id)
        self._store.history.append(result)
        return result

    async def list_for_task(
        self, tenant_id: str, task_id: str, newest_first: bool = False
    ) -> list[TaskHistoryResult]:
        rows = [
            h
            for h in self._store.history
            if h.tenant_id == tenant_id and h.task_id == task_id
        ]
        # Stable sort: insertion order breaks created_at ties.
        rows.sort(key=lambda h: h.created_at)
        if newest_first:
            rows.reverse()
        return rows


class InMemoryUnitOfWork:
    def __init__(self, store: InMemoryTaskStore) -> None:
        self._store = store
        self._before: dict[str, TaskResult | None] = {}
        self.history_ids: list[str] = []
        self.tasks = InMemoryTaskRepository(store, self)
        self.history = InMemoryTaskHistoryRepository(store, self)

    def remember(self, task_id: str) -> None:
        if task_id not in self._before:
            self._before[task_id] = self._store.tasks.get(task_id)

    def rollback(self) -> None:
        for task_id, previous in self._before.items():
            if previous is None:
                self._store.tasks.pop(task_id, None)
            else:
                self._store.tasks[task_id] = previous
        mine = set(self.history_ids)
        self._store.history = [h for h in self._store.history if h.id not in mine]


class InMemoryTaskStore:
    """ITaskStore backed by dicts."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.tasks: dict[str, TaskResult] = {}
        self.history: list[TaskHistoryResult] = []
        self.transactions = 0
        self.open_transactions = 0

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[InMemoryUnitOfWork]:
        uow = InMemoryUnitOfWork(self)
        self.transactions += 1
        self.open_transactions += 1
        try:
            yield uow
        except BaseException:
            uow.rollback()
            raise
        finally:
            self.open_transactions -= 1

    def history_for(self, task_id: str) -> list[TaskHistoryResult]:
        return [h for h in self.history if h.task_id == task_id]


class InMemoryGroupLookup:
    """IGroupMemberLookup over dicts; workload counts come from the task store."""

    def __init__(self, store: InMemoryTaskStore | None = None) -> None:
        self._store = store
        self.groups: dict[tuple[str, str], GroupInfo] = {}
        self.members: dict[tuple[str, str], list[str]] = {}
        # Lookups made while a task transaction was open.
        self.lookups_in_transaction = 0

    def add_group(
        self,
        tenant_id: str,
        group_id: str,
        members: list[str],
        strategy: AssignmentStrategyType = AssignmentStrategyType.ROUND_ROBIN,
        is_assignable: bool = True,
    ) -> None:
        self.groups[(tenant_id, group_id)] = GroupInfo(
            id=group_id,
            tenant_id=tenant_id,
            name=group_id,
            assignment_strategy=strategy,
            is_assignable=is_assignable,
        )
        self.members[(tenant_id, group_id)] = list(members)

    def _seen(self) -> None:
        if self._store is not None and self._store.open_transactions:
            self.lookups_in_transaction += 1

    async def get_group(self, tenant_id: str, group_id: str) -> GroupInfo | None:
        self._seen()
        return self.groups.get((tenant_id, group_id))

    async def list_active_member_ids(self, tenant_id: str, group_id: str) -> list[str]:
        self._seen()
        group = self.groups.get((tenant_id, group_id))
        if group is None or not group.is_assignable:
            return []
        return list(self.members.get((tenant_id, group_id), []))

    async def count_active_tasks(
        self, tenant_id: str, user_ids: Collection[str]
    ) -> dict[str, int]:
        counts = {user_id: 0 for user_id in user_ids}
        if self._store is None:
            return counts
        open_values = _values(OPEN_STATUSES)
        for t in self._store.tasks.values():
            if (
                t.tenant_id == tenant_id
                and t.deleted_at is None
                and t.status in open_values
                and t.assigned_user_id in counts
            ):
                counts[t.assigned_user_id] += 1
        return counts


class RecordingNotifier:
    """ITaskNotifier that records (event, task_id, *args); fail=True raises on every call."""

    def __init__(self, fail: bool = False) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self.fail = fail

    async def _record(self, event: str, task: TaskResult, *args: Any) -> bool:
        self.calls.append((event, task.id, *args))
        if self.fail:
            raise RuntimeError("notification channel down")
        return True

    def events(self) -> list[str]:
        return [c[0] for c in self.calls]

    async def task_created(self, task: TaskResult) -> bool:
        return await self._record("task_created", task)

    async def task_assigned(self, task: TaskResult, user_id: str) -> bool:
        return await self._record("task_assigned", task, user_id)

    async def task_escalated(self, task: TaskResult, reason: str | None = None) -> bool:
        return await self._record("task_escalated", task, reason)

    async def task_completed(self, task: TaskResult) -> bool:
        return await self._record("task_completed", task)

    async def sla_warning(self, task: TaskResult, minutes_remaining: int) -> bool:
        return await self._record("sla_warning", task, minutes_remaining)

    async def sla_breach(self, task: TaskResult) -> bool:
        return await self._record("sla_breach", task)


class RecordingSignaler:
    """IWorkflowSignaler that records signal attempts; fail=True raises after recording."""

    def __init__(self, fail: bool = False) -> None:
        self.signals: list[tuple[str, str, str, dict[str, Any]]] = []
        self.fail = fail

    async def signal(
        self, workflow_id: str, run_id: str, signal_name: str, payload: dict[str, Any]
    ) -> bool:
        self.signals.append((workflow_id, run_id, signal_name, payload))
        if self.fail:
            raise ConnectionError("workflow engine unreachable")
        return True


def make_task(**overrides: Any) -> TaskResult:
    """TaskResult with sensible defaults (assigned to group g1, created 2025-01-15 12:00 UTC)."""
    created = overrides.pop("created_at", datetime(2025, 1, 15, 12, 0, tzinfo=UTC))
    values: dict[str, Any] = {
        "id": "tsk_1",
        "tenant_id": "t1",
        "type": "human_task",
        "title": "Approve refund",
        "description": None,
        "priority": "medium",
        "status": "assigned",
        "form_schema": {"fields": {}},
        "form_data": None,
        "context": {},
        "assigned_user_id": None,
        "assigned_group_id": "g1",
        "claimed_by": None,
        "claimed_at": None,
        "due_at": None,
        "warn_at": None,
        "escalation_config": None,
        "escalation_level": 0,
        "sla_warned_at": None,
        "workflow_id": None,
        "workflow_run_id": None,
        "completed_by": None,
        "completed_at": None,
        "created_at": created,
        "updated_at": created,
    }
    values.update(overrides)
    return TaskResult(**values)
