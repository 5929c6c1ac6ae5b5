"""Run one SLA sweep pass: send due warnings and apply due escalations."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from app.application.dtos.sla_sweep import SlaSweepResult
from app.domain.exceptions import TaskDeskException
from app.shared.context import RequestContext
from app.shared.telemetry.logging import get_logger
from app.shared.utils.datetime import utc_now

if TYPE_CHECKING:
    from app.application.services.task_service import TaskService

logger = get_logger(__name__)

SLA_SWEEP_BATCH_SIZE = 200
MAX_ERROR_ENTRIES = 50


class RunSlaSweepUseCase:
    """Sends SLA warnings and auto-escalations for open tasks.

    One invocation is one pass; scheduling is left to the caller (cron, a
    workflow timer, or scripts/run_sla_sweep.py). Each tenant is handled
    with a system RequestContext. A failing task is counted and logged and
    does not stop the pass.
    """

    def __init__(
        self, task_service: TaskService, batch_size: int = SLA_SWEEP_BATCH_SIZE
    ) -> None:
        self._task_service = task_service
        self._batch_size = batch_size

    async def run(
        self, tenant_id: str | None = None, now: datetime | None = None
    ) -> SlaSweepResult:
        """Sweep one tenant, or every tenant with open tasks when tenant_id is None.

        Returns:
            SlaSweepResult with per-pass counts and failing task ids.
        """
        now = now or utc_now()
        result = SlaSweepResult()
        if tenant_id is not None:
            tenant_ids = [tenant_id]
        else:
            tenant_ids = await self._task_service.list_tenant_ids_with_open_tasks()

        for tid in tenant_ids:
            await self._sweep_tenant(RequestContext.system(tid), now, result)
            result.tenants_processed += 1

        logger.info(
            "SLA sweep finished: tenants=%d examined=%d warnings=%d escalations=%d errors=%d",
            result.tenants_processed,
            result.tasks_examined,
            result.warnings_sent,
            result.escalations_applied,
            len(result.errors),
        )
        return result

    async def _sweep_tenant(
        self, ctx: RequestContext, now: datetime, result: SlaSweepResult
    ) -> None:
        warn_candidates = await self._task_service.list_needing_warning(
            ctx, now=now, limit=self._batch_size
        )
        for task in warn_candidates:
            result.tasks_examined += 1
            try:
                if await self._task_service.send_sla_warning(ctx, task.id, now=now):
                    result.warnings_sent += 1
            except TaskDeskException as e:
                self._record_error(result, task.id, e)
            except Exception as e:
                logger.exception("Unexpected SLA sweep error for task %s", task.id)
                self._record_error(result, task.id, e)

        escalation_candidates = await self._task_service.list_needing_escalation(
            ctx, now=now, limit=self._batch_size
        )
        for task in escalation_candidates:
            result.tasks_examined += 1
            try:
                escalation, _ = await self._task_service.auto_escalate(ctx, task.id, now=now)
            except TaskDeskException as e:
                self._record_error(result, task.id, e)
                continue
            except Exception as e:
                logger.exception("Unexpected SLA sweep error for task %s", task.id)
                self._record_error(result, task.id, e)
                continue
            if escalation.escalated:
                result.escalations_applied += 1

    @staticmethod
    def _record_error(result: SlaSweepResult, task_id: str, error: Exception) -> None:
        logger.warning("SLA sweep failed for task %s: %s", task_id, error)
        if len(result.errors) < MAX_ERROR_ENTRIES:
            result.errors.append(task_id)
