"""Task lifecycle service: create, claim, complete, reassign, cancel, expire, escalate.

Every mutation runs in one store transaction: load the task (tenant-scoped),
check the transition table, write the new state and exactly one history
entry. Notifications and workflow signals are sent after commit and are
best-effort: failures are logged and never fail the operation.
"""

from __future__ import annotations

from collections.abc import Callable, Collection
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from app.application.dtos.escalation import EscalationResult
from app.application.dtos.task import (
    AssignmentTarget,
    CreateTaskInput,
    ResolvedAssignment,
    SlaStatus,
    TaskCreate,
    TaskFilter,
    TaskHistoryCreate,
    TaskHistoryResult,
    TaskResult,
    TaskStats,
)
from app.application.interfaces.repositories import ITaskStore, ITaskUnitOfWork
from app.application.interfaces.services import ITaskNotifier, IWorkflowSignaler
from app.application.services.assignment_resolver import AssignmentResolver
from app.application.services.duration import (
    compute_sla,
    get_sla_status,
    is_breached,
    next_escalation_at,
)
from app.application.services.escalation_processor import (
    EscalationProcessor,
    build_escalation_reason,
    parse_escalation_config,
)
from app.application.services.form_validator import (
    is_valid_form_schema,
    parse_form_schema,
    validate_form_data_or_raise,
)
from app.domain.enums import EscalationAction, TaskHistoryAction, TaskStatus
from app.domain.exceptions import (
    ClaimConflictException,
    InvalidStateException,
    ResourceNotFoundException,
    ValidationException,
)
from app.domain.task_lifecycle import (
    LEGAL_SOURCES,
    OPEN_STATUSES,
    ensure_transition,
    status_for_assignment,
)
from app.shared.context import RequestContext
from app.shared.telemetry.logging import get_logger
from app.shared.telemetry.tracing import add_span_attributes, traced
from app.shared.utils.datetime import diff_ms, isoformat_utc, utc_now
from app.shared.utils.generators import generate_history_id, generate_task_id

logger = get_logger(__name__)


@dataclass(frozen=True)
class TaskSignalNames:
    """Workflow signal names sent on completion, cancellation and escalation."""

    completed: str = "taskCompleted"
    cancelled: str = "taskCancelled"
    escalated: str = "taskEscalated"


class NoOpTaskNotifier:
    """Notifier that drops every notification (default when none is configured)."""

    async def task_created(self, task: TaskResult) -> bool:
        return True

    async def task_assigned(self, task: TaskResult, user_id: str) -> bool:
        return True

    async def task_escalated(self, task: TaskResult, reason: str | None = None) -> bool:
        return True

    async def task_completed(self, task: TaskResult) -> bool:
        return True

    async def sla_warning(self, task: TaskResult, minutes_remaining: int) -> bool:
        return True

    async def sla_breach(self, task: TaskResult) -> bool:
        return True


class TaskService:
    """Human task lifecycle state machine with SLA escalation.

    Collaborators are passed in explicitly; the store handle owns the
    database connection pool and is shared across calls.
    """

    def __init__(
        self,
        store: ITaskStore,
        assignment_resolver: AssignmentResolver,
        escalation_processor: EscalationProcessor | None = None,
        notifier: ITaskNotifier | None = None,
        signaler: IWorkflowSignaler | None = None,
        signal_names: TaskSignalNames | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.assignment_resolver = assignment_resolver
        self.escalation_processor = escalation_processor or EscalationProcessor()
        self.notifier: ITaskNotifier = notifier or NoOpTaskNotifier()
        self.signaler = signaler
        self.signal_names = signal_names or TaskSignalNames()
        self._clock = clock

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    @traced("task.create")
    async def create(self, ctx: RequestContext, data: CreateTaskInput) -> TaskResult:
        """Create a task; status is assigned when the target resolves to anyone, else pending.

        Raises:
            ValidationException: invalid form schema, SLA duration or escalation chain.
        """
        if not is_valid_form_schema(data.form_schema):
            raise ValidationException("Invalid form schema", field="form_schema")

        now = self._clock()
        due_at = warn_at = next_escalation = None
        escalation_config: list[dict[str, Any]] | None = None
        metadata = dict(data.metadata or {})
        if data.sla is not None:
            sla = compute_sla(data.sla, now)
            due_at, warn_at = sla.due_at, sla.warn_at
            if sla.escalation_config is not None:
                chain = parse_escalation_config(sla.escalation_config)
                if chain is None:
                    raise ValidationException(
                        "Invalid escalation config", field="sla.escalation"
                    )
                escalation_config = [step.to_stored() for step in chain]
                next_escalation = next_escalation_at(chain, now)
            if data.sla.warn_before:
                metadata.setdefault("sla_warn_before", data.sla.warn_before)
            metadata.setdefault("sla_on_breach", sla.on_breach)

        assignment = await self.assignment_resolver.resolve(ctx, data.assign_to)
        status = status_for_assignment(assignment.user_id, assignment.group_id)

        async with self.store.transaction() as uow:
            task = await uow.tasks.create(
                TaskCreate(
                    id=generate_task_id(),
                    tenant_id=ctx.tenant_id,
                    type=data.type,
                    title=data.title,
                    description=data.description,
                    priority=data.priority.value,
                    status=status.value,
                    form_schema=data.form_schema,
                    context={**(data.context or {}), "conversation_id": data.conversation_id},
                    assigned_user_id=assignment.user_id,
                    assigned_group_id=assignment.group_id,
                    due_at=due_at,
                    warn_at=warn_at,
                    escalation_config=escalation_config,
                    workflow_id=data.workflow_id,
                    workflow_run_id=data.workflow_run_id,
                    metadata=metadata,
                    created_at=now,
                    next_escalation_at=next_escalation,
                )
            )
            await self._record(
                uow,
                ctx,
                task.id,
                TaskHistoryAction.CREATED,
                ctx.user_id,
                {
                    "type": data.type,
                    "title": data.title,
                    "assigned_user_id": assignment.user_id,
                    "assigned_group_id": assignment.group_id,
                    "strategy": assignment.strategy.value,
                    "workflow_id": data.workflow_id,
                },
            )

        logger.info("Created task %s (tenant %s, status %s)", task.id, ctx.tenant_id, task.status)
        await self._notify("task_created", task)
        if assignment.user_id:
            await self._notify("task_assigned", task, assignment.user_id)
        return task

    @traced("task.claim")
    async def claim(self, ctx: RequestContext, task_id: str) -> TaskResult:
        """Claim a pending/assigned task for the calling user (status in_progress).

        The claim is a conditional update; when a concurrent request wins,
        ClaimConflictException is raised.
        """
        user_id = ctx.require_user("claim")
        async with self.store.transaction() as uow:
            task = await self._load(uow, ctx, task_id)
            if task.claimed_by:
                raise ClaimConflictException(task.id, task.claimed_by)
            if not task.assigned_group_id and task.assigned_user_id != user_id:
                raise InvalidStateException(
                    "Task cannot be claimed - not assigned to your group",
                    operation="claim",
                    status=task.status,
                )
            ensure_transition("claim", task.status)
            claimed = await uow.tasks.claim(
                ctx.tenant_id, task.id, user_id, self._clock(), LEGAL_SOURCES["claim"]
            )
            if claimed is None:
                raise ClaimConflictException(task.id)
            await self._record(
                uow, ctx, task.id, TaskHistoryAction.CLAIMED, user_id, {"claimed_by": user_id}
            )
        logger.info("Task %s claimed by %s", task.id, user_id)
        return claimed

    @traced("task.unclaim")
    async def unclaim(self, ctx: RequestContext, task_id: str) -> TaskResult:
        """Release the caller's own claim; the task goes back to assigned."""
        user_id = ctx.require_user("unclaim")
        async with self.store.transaction() as uow:
            task = await self._load(uow, ctx, task_id)
            if task.claimed_by != user_id:
                raise InvalidStateException(
                    "Task is not claimed by the current user",
                    operation="unclaim",
                    status=task.status,
                )
            ensure_transition("unclaim", task.status)
            released = await uow.tasks.unclaim(
                ctx.tenant_id, task.id, user_id, LEGAL_SOURCES["unclaim"]
            )
            if released is None:
                raise InvalidStateException(
                    "Task claim changed concurrently; reload and retry",
                    operation="unclaim",
                    status=task.status,
                )
            await self._record(
                uow,
                ctx,
                task.id,
                TaskHistoryAction.UNCLAIMED,
                user_id,
                {"previous_claimed_by": user_id},
            )
        return released

    @traced("task.complete")
    async def complete(
        self, ctx: RequestContext, task_id: str, form_data: dict[str, Any] | None
    ) -> TaskResult:
        """Complete a task with form data validated against its form schema.

        Validation happens before any write; an invalid submission leaves
        the task unchanged.
        """
        user_id = ctx.require_user("complete")
        async with self.store.transaction() as uow:
            task = await self._load(uow, ctx, task_id)
            ensure_transition("complete", task.status)
            schema = parse_form_schema(task.form_schema)
            if schema is None:
                raise ValidationException("Task has invalid form schema", field="form_schema")
            validated = validate_form_data_or_raise(schema, form_data)
            completed_at = self._clock()
            updated = await self._update(
                uow,
                ctx,
                task.id,
                {
                    "status": TaskStatus.COMPLETED.value,
                    "form_data": validated,
                    "completed_by": user_id,
                    "completed_at": completed_at,
                },
            )
            await self._record(
                uow,
                ctx,
                task.id,
                TaskHistoryAction.COMPLETED,
                user_id,
                {"completed_by": user_id},
            )

        logger.info("Task %s completed by %s", task.id, user_id)
        await self._notify("task_completed", updated)
        await self._signal(
            updated,
            self.signal_names.completed,
            {
                "taskId": updated.id,
                "formData": validated,
                "completedBy": user_id,
                "completedAt": isoformat_utc(completed_at),
            },
        )
        return updated

    @traced("task.reassign")
    async def reassign(
        self, ctx: RequestContext, task_id: str, target: AssignmentTarget
    ) -> TaskResult:
        """Reassign to target (resolved like on create); clears any claim.

        An empty target leaves the task pending and unassigned. The target is
        resolved before the task transaction opens; the transition is checked
        again inside it.
        """
        ensure_transition("reassign", (await self.get_by_id(ctx, task_id)).status)
        assignment = await self.assignment_resolver.resolve(ctx, target)
        async with self.store.transaction() as uow:
            task = await self._load(uow, ctx, task_id)
            ensure_transition("reassign", task.status)
            updated = await self._apply_reassignment(uow, ctx, task, assignment, {}, {})
        if assignment.user_id:
            await self._notify("task_assigned", updated, assignment.user_id)
        return updated

    @traced("task.cancel")
    async def cancel(
        self, ctx: RequestContext, task_id: str, reason: str | None = None
    ) -> TaskResult:
        """Cancel an open or escalated task."""
        async with self.store.transaction() as uow:
            task = await self._load(uow, ctx, task_id)
            ensure_transition("cancel", task.status)
            cancelled_at = self._clock()
            updated = await self._update(
                uow, ctx, task.id, {"status": TaskStatus.CANCELLED.value}
            )
            await self._record(
                uow, ctx, task.id, TaskHistoryAction.CANCELLED, ctx.user_id, {"reason": reason}
            )

        logger.info("Task %s cancelled", task.id)
        await self._signal(
            updated,
            self.signal_names.cancelled,
            {
                "taskId": updated.id,
                "reason": reason,
                "cancelledBy": ctx.user_id,
                "cancelledAt": isoformat_utc(cancelled_at),
            },
        )
        return updated

    @traced("task.expire")
    async def expire(self, ctx: RequestContext, task_id: str) -> TaskResult:
        """Mark an open task expired (system action; history has no user)."""
        async with self.store.transaction() as uow:
            task = await self._load(uow, ctx, task_id)
            ensure_transition("expire", task.status)
            updated = await self._update(uow, ctx, task.id, {"status": TaskStatus.EXPIRED.value})
            await self._record(
                uow,
                ctx,
                task.id,
                TaskHistoryAction.EXPIRED,
                None,
                {"due_at": isoformat_utc(task.due_at)},
            )
        logger.info("Task %s expired", task.id)
        return updated

    @traced("task.escalate")
    async def escalate(
        self,
        ctx: RequestContext,
        task_id: str,
        reason: str | None = None,
        target: AssignmentTarget | None = None,
    ) -> TaskResult:
        """Manually escalate an open task.

        Target priority: explicit target, first chain step, current assignment.
        """
        async with self.store.transaction() as uow:
            task = await self._load(uow, ctx, task_id)
            ensure_transition("escalate", task.status)
            now = self._clock()
            result = self.escalation_processor.process_manual_escalation(
                task, target, reason, now
            )
            updated = await self._apply_escalation(uow, ctx, task, result, ctx.user_id, {})

        await self._after_escalation(updated, result, now)
        return updated

    @traced("task.auto_escalate")
    async def auto_escalate(
        self, ctx: RequestContext, task_id: str, now: datetime | None = None
    ) -> tuple[EscalationResult, TaskResult]:
        """Apply the automatic escalation decision for one task (used by the SLA sweep).

        Step actions: escalate sets status escalated, reassign moves the task
        to the step target, notify only sends a notification. Each applied
        step advances escalation_level and next_escalation_at and writes one
        history entry.

        The decision is made on a snapshot read; a reassign target is resolved
        before the write transaction opens. If the task changed in between,
        nothing is applied and the next sweep decides again.
        """
        now = now or self._clock()
        task = await self.get_by_id(ctx, task_id)
        if task.task_status not in OPEN_STATUSES:
            return EscalationResult(escalated=False, is_final_step=True), task
        result = self.escalation_processor.process_auto_escalation(task, now=now)
        if not result.escalated:
            return result, task

        assignment = None
        if result.action == EscalationAction.REASSIGN:
            ensure_transition("reassign", task.status)
            assignment = await self.assignment_resolver.resolve(
                ctx, result.target or AssignmentTarget()
            )

        chain = parse_escalation_config(task.escalation_config) or []
        level = result.next_level if result.next_level is not None else task.escalation_level
        progress: dict[str, Any] = {
            "escalation_level": level,
            "next_escalation_at": next_escalation_at(chain, task.created_at, level),
        }
        extra_data: dict[str, Any] = {
            "automatic": True,
            "step_index": result.step_index,
            "skipped_notify_steps": list(result.skipped_notify_steps),
        }
        async with self.store.transaction() as uow:
            current = await self._load(uow, ctx, task_id)
            if _escalation_snapshot(current) != _escalation_snapshot(task):
                logger.info("Task %s changed during auto-escalation, skipping", task_id)
                return EscalationResult(escalated=False, is_final_step=False), current

            if assignment is not None:
                updated = await self._apply_reassignment(
                    uow, ctx, task, assignment, progress, {**extra_data, "reason": result.reason}
                )
            elif result.action == EscalationAction.NOTIFY:
                updated = await self._update(uow, ctx, task.id, progress)
                target = result.target or task.assignment
                await self._record(
                    uow,
                    ctx,
                    task.id,
                    TaskHistoryAction.ESCALATION_NOTIFIED,
                    None,
                    {
                        **extra_data,
                        "reason": result.reason,
                        "notified_user_id": target.user_id,
                        "notified_group_id": target.group_id,
                    },
                )
            else:
                ensure_transition("escalate", task.status)
                updated = await self._apply_escalation(
                    uow, ctx, task, result, None, extra_data, progress
                )

        logger.info(
            "Auto-escalated task %s: action=%s step=%s",
            task.id,
            result.action.value if result.action else None,
            result.step_index,
        )
        for index in result.skipped_notify_steps:
            await self._notify(
                "task_escalated", updated, build_escalation_reason(task, chain[index], True, now)
            )
        if result.action == EscalationAction.REASSIGN:
            if assignment is not None and assignment.user_id:
                await self._notify("task_assigned", updated, assignment.user_id)
            await self._notify("task_escalated", updated, result.reason)
        elif result.action == EscalationAction.NOTIFY:
            await self._notify("task_escalated", updated, result.reason)
        else:
            await self._after_escalation(updated, result, now)
        if task.due_at is not None and is_breached(task.due_at, now):
            await self._notify("sla_breach", updated)
        return result, updated

    @traced("task.send_sla_warning")
    async def send_sla_warning(
        self, ctx: RequestContext, task_id: str, now: datetime | None = None
    ) -> bool:
        """Send the SLA warning once for an open task inside its warning window.

        Returns False when there is nothing to send (no deadline, already
        warned, or already breached).
        """
        now = now or self._clock()
        async with self.store.transaction() as uow:
            task = await self._load(uow, ctx, task_id)
            if (
                task.task_status not in OPEN_STATUSES
                or task.due_at is None
                or task.sla_warned_at is not None
                or is_breached(task.due_at, now)
            ):
                return False
            minutes_remaining = max(diff_ms(task.due_at, now) // 60_000, 0)
            updated = await self._update(uow, ctx, task.id, {"sla_warned_at": now})
            await self._record(
                uow,
                ctx,
                task.id,
                TaskHistoryAction.SLA_WARNING,
                None,
                {"minutes_remaining": minutes_remaining},
            )
        await self._notify("sla_warning", updated, minutes_remaining)
        return True

    @traced("task.add_comment")
    async def add_comment(
        self,
        ctx: RequestContext,
        task_id: str,
        text: str,
        internal: bool = False,
        user_id: str | None = None,
    ) -> TaskHistoryResult:
        """Append a comment to the task history (any status)."""
        if not text or not text.strip():
            raise ValidationException("Comment text is required", field="text")
        async with self.store.transaction() as uow:
            task = await self._load(uow, ctx, task_id)
            return await self._record(
                uow,
                ctx,
                task.id,
                TaskHistoryAction.COMMENTED,
                user_id or ctx.user_id,
                {"text": text, "internal": internal},
            )

    @traced("task.soft_delete")
    async def soft_delete(self, ctx: RequestContext, task_id: str) -> None:
        """Hide the task from reads; status is left untouched."""
        async with self.store.transaction() as uow:
            task = await self._load(uow, ctx, task_id)
            if not await uow.tasks.soft_delete(ctx.tenant_id, task.id, self._clock()):
                raise ResourceNotFoundException("Task", task_id)
            await self._record(
                uow, ctx, task.id, TaskHistoryAction.DELETED, ctx.user_id, {"status": task.status}
            )

    @traced("task.restore")
    async def restore(self, ctx: RequestContext, task_id: str) -> TaskResult:
        """Undo a soft delete."""
        async with self.store.transaction() as uow:
            task = await self._load(uow, ctx, task_id, include_deleted=True)
            if not task.is_deleted:
                raise InvalidStateException(
                    "Task is not deleted", operation="restore", status=task.status
                )
            await uow.tasks.restore(ctx.tenant_id, task.id)
            await self._record(uow, ctx, task.id, TaskHistoryAction.RESTORED, ctx.user_id, {})
            return await self._load(uow, ctx, task.id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def find_by_id(
        self, ctx: RequestContext, task_id: str, include_deleted: bool = False
    ) -> TaskResult | None:
        """Return the task in ctx's tenant, or None (other tenants' tasks are never visible)."""
        async with self.store.transaction() as uow:
            return await uow.tasks.get_by_id(ctx.tenant_id, task_id, include_deleted)

    async def get_by_id(
        self, ctx: RequestContext, task_id: str, include_deleted: bool = False
    ) -> TaskResult:
        """Like find_by_id but raises ResourceNotFoundException."""
        task = await self.find_by_id(ctx, task_id, include_deleted)
        if task is None:
            raise ResourceNotFoundException("Task", task_id)
        return task

    async def list_tasks(
        self, ctx: RequestContext, task_filter: TaskFilter | None = None
    ) -> list[TaskResult]:
        async with self.store.transaction() as uow:
            return await uow.tasks.list_tasks(ctx.tenant_id, task_filter or TaskFilter())

    async def list_pending(self, ctx: RequestContext) -> list[TaskResult]:
        """Open tasks (pending, assigned, in_progress), most urgent first."""
        return await self.list_by_status(ctx, OPEN_STATUSES)

    async def list_by_status(
        self, ctx: RequestContext, statuses: TaskStatus | Collection[TaskStatus]
    ) -> list[TaskResult]:
        if isinstance(statuses, TaskStatus):
            statuses = [statuses]
        values = tuple(sorted(TaskStatus(s).value for s in statuses))
        return await self.list_tasks(ctx, TaskFilter(statuses=values, limit=1000))

    async def list_for_user(
        self, ctx: RequestContext, user_id: str, group_ids: Collection[str] = ()
    ) -> list[TaskResult]:
        """Open tasks assigned to or claimed by user, plus unclaimed tasks of their groups."""
        async with self.store.transaction() as uow:
            return await uow.tasks.list_for_user(
                ctx.tenant_id, user_id, list(group_ids), OPEN_STATUSES
            )

    async def list_overdue(
        self, ctx: RequestContext, now: datetime | None = None
    ) -> list[TaskResult]:
        async with self.store.transaction() as uow:
            return await uow.tasks.list_overdue(
                ctx.tenant_id, now or self._clock(), OPEN_STATUSES
            )

    async def list_needing_escalation(
        self, ctx: RequestContext, now: datetime | None = None, limit: int = 500
    ) -> list[TaskResult]:
        """Open tasks with a chain step or default breach escalation due now (for a poller)."""
        async with self.store.transaction() as uow:
            return await uow.tasks.list_needing_escalation(
                ctx.tenant_id, now or self._clock(), OPEN_STATUSES, limit
            )

    async def list_needing_warning(
        self, ctx: RequestContext, now: datetime | None = None, limit: int = 500
    ) -> list[TaskResult]:
        async with self.store.transaction() as uow:
            return await uow.tasks.list_needing_warning(
                ctx.tenant_id, now or self._clock(), OPEN_STATUSES, limit
            )

    async def list_tenant_ids_with_open_tasks(self) -> list[str]:
        """Tenants with open tasks (system-wide; used by the all-tenant SLA sweep)."""
        async with self.store.transaction() as uow:
            return await uow.tasks.list_tenant_ids_with_open_tasks(OPEN_STATUSES)

    async def get_history(
        self, ctx: RequestContext, task_id: str, newest_first: bool = False
    ) -> list[TaskHistoryResult]:
        """History entries in creation order (or reverse-chronological)."""
        async with self.store.transaction() as uow:
            task = await self._load(uow, ctx, task_id, include_deleted=True)
            return await uow.history.list_for_task(ctx.tenant_id, task.id, newest_first)

    async def get_stats(self, ctx: RequestContext, now: datetime | None = None) -> TaskStats:
        async with self.store.transaction() as uow:
            by_status = await uow.tasks.count_by_status(ctx.tenant_id)
            overdue = await uow.tasks.count_overdue(
                ctx.tenant_id, now or self._clock(), OPEN_STATUSES
            )
        return TaskStats(total=sum(by_status.values()), by_status=by_status, overdue=overdue)

    def get_sla_status(self, task: TaskResult, now: datetime | None = None) -> SlaStatus | None:
        """SLA snapshot for a task with a deadline, else None."""
        if task.due_at is None:
            return None
        warn_before = (task.metadata or {}).get("sla_warn_before")
        return get_sla_status(
            task.due_at,
            warn_before=warn_before if isinstance(warn_before, str) else None,
            warn_at=task.warn_at,
            now=now or self._clock(),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _load(
        self,
        uow: ITaskUnitOfWork,
        ctx: RequestContext,
        task_id: str,
        include_deleted: bool = False,
    ) -> TaskResult:
        add_span_attributes(task_id=task_id, tenant_id=ctx.tenant_id)
        task = await uow.tasks.get_by_id(ctx.tenant_id, task_id, include_deleted)
        if task is None:
            raise ResourceNotFoundException("Task", task_id)
        return task

    async def _update(
        self, uow: ITaskUnitOfWork, ctx: RequestContext, task_id: str, values: dict[str, Any]
    ) -> TaskResult:
        updated = await uow.tasks.update(ctx.tenant_id, task_id, values)
        if updated is None:
            raise ResourceNotFoundException("Task", task_id)
        return updated

    async def _record(
        self,
        uow: ITaskUnitOfWork,
        ctx: RequestContext,
        task_id: str,
        action: TaskHistoryAction,
        user_id: str | None,
        data: dict[str, Any],
    ) -> TaskHistoryResult:
        return await uow.history.append(
            TaskHistoryCreate(
                id=generate_history_id(),
                tenant_id=ctx.tenant_id,
                task_id=task_id,
                action=action.value,
                user_id=user_id,
                data=data,
                created_at=self._clock(),
            )
        )

    async def _apply_reassignment(
        self,
        uow: ITaskUnitOfWork,
        ctx: RequestContext,
        task: TaskResult,
        assignment: ResolvedAssignment,
        extra_values: dict[str, Any],
        extra_data: dict[str, Any],
    ) -> TaskResult:
        status = status_for_assignment(assignment.user_id, assignment.group_id)
        updated = await self._update(
            uow,
            ctx,
            task.id,
            {
                "assigned_user_id": assignment.user_id,
                "assigned_group_id": assignment.group_id,
                "status": status.value,
                "claimed_by": None,
                "claimed_at": None,
                **extra_values,
            },
        )
        await self._record(
            uow,
            ctx,
            task.id,
            TaskHistoryAction.REASSIGNED,
            ctx.user_id,
            {
                "previous_assigned_user_id": task.assigned_user_id,
                "previous_assigned_group_id": task.assigned_group_id,
                "new_assigned_user_id": assignment.user_id,
                "new_assigned_group_id": assignment.group_id,
                "strategy": assignment.strategy.value,
                **extra_data,
            },
        )
        return updated

    async def _apply_escalation(
        self,
        uow: ITaskUnitOfWork,
        ctx: RequestContext,
        task: TaskResult,
        result: EscalationResult,
        user_id: str | None,
        extra: dict[str, Any],
        extra_values: dict[str, Any] | None = None,
    ) -> TaskResult:
        # Each target field falls back to the current assignment when unset.
        target = result.target or AssignmentTarget()
        values: dict[str, Any] = {
            "status": TaskStatus.ESCALATED.value,
            "assigned_user_id": target.user_id or task.assigned_user_id,
            "assigned_group_id": target.group_id or task.assigned_group_id,
            "claimed_by": None,
            "claimed_at": None,
            **(extra_values or {}),
        }
        updated = await self._update(uow, ctx, task.id, values)
        await self._record(
            uow,
            ctx,
            task.id,
            TaskHistoryAction.ESCALATED,
            user_id,
            {
                "reason": result.reason,
                "escalated_to_user_id": target.user_id,
                "escalated_to_group_id": target.group_id,
                **extra,
            },
        )
        return updated

    async def _after_escalation(
        self, task: TaskResult, result: EscalationResult, now: datetime
    ) -> None:
        logger.info("Task %s escalated: %s", task.id, result.reason)
        await self._notify("task_escalated", task, result.reason)
        target = result.target or AssignmentTarget()
        await self._signal(
            task,
            self.signal_names.escalated,
            {
                "taskId": task.id,
                "reason": result.reason,
                "escalatedTo": target.to_payload(),
                "escalatedAt": isoformat_utc(now),
            },
        )

    async def _notify(self, event: str, task: TaskResult, *args: Any) -> None:
        """Call notifier.<event>; failures are logged, never raised."""
        try:
            delivered = await getattr(self.notifier, event)(task, *args)
        except Exception:
            logger.exception("Notification %s failed for task %s", event, task.id)
            return
        if delivered is False:
            logger.warning("Notification %s was not delivered for task %s", event, task.id)

    async def _signal(self, task: TaskResult, signal_name: str, payload: dict[str, Any]) -> None:
        """Signal the linked workflow run; unlinked tasks are skipped."""
        if self.signaler is None or not task.is_linked:
            return
        try:
            delivered = await self.signaler.signal(
                task.workflow_id, task.workflow_run_id, signal_name, payload
            )
        except Exception:
            logger.exception(
                "Failed to signal %s to workflow %s for task %s",
                signal_name,
                task.workflow_id,
                task.id,
            )
            return
        if not delivered:
            logger.warning(
                "Workflow signal %s not delivered for task %s", signal_name, task.id
            )


def _escalation_snapshot(task: TaskResult) -> tuple[Any, ...]:
    """Fields an automatic escalation decision depends on."""
    return (
        task.status,
        task.escalation_level,
        task.assigned_user_id,
        task.assigned_group_id,
    )
