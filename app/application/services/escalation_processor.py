"""Escalation decisions for tasks: chain step selection and manual escalation.

Pure decision logic. The task service applies the returned EscalationResult
(status, assignment, history, notifications) inside its own transaction.

Step i of a chain fires once the time since task creation reaches its
"after" duration. When several steps became due since the last check only
the highest one is applied (skip-ahead); skipped notify steps are reported
in EscalationResult.skipped_notify_steps so their notifications still go out.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from app.application.dtos.escalation import ApplicableStep, EscalationResult
from app.application.dtos.task import AssignmentTarget, TaskResult
from app.application.services.duration import is_breached, is_valid_duration, parse_duration
from app.domain.enums import EscalationAction, TaskStatus
from app.domain.task_lifecycle import OPEN_STATUSES
from app.schemas.escalation import EscalationStep
from app.shared.telemetry.logging import get_logger
from app.shared.utils.datetime import diff_ms, utc_now

logger = get_logger(__name__)


def parse_escalation_config(raw: Any) -> list[EscalationStep] | None:
    """Parse a stored or submitted chain. Malformed input returns None (never raises)."""
    if not isinstance(raw, list):
        return None
    steps: list[EscalationStep] = []
    for item in raw:
        if not isinstance(item, dict):
            return None
        try:
            step = EscalationStep.model_validate(item)
        except ValidationError:
            return None
        if not is_valid_duration(step.after):
            return None
        steps.append(step)
    return steps


def get_applicable_step(
    chain: Sequence[EscalationStep],
    created_at: datetime,
    executed_steps: int = 0,
    now: datetime | None = None,
) -> ApplicableStep | None:
    """Highest-indexed step at or after executed_steps whose threshold has elapsed."""
    elapsed = diff_ms(now or utc_now(), created_at)
    last = len(chain) - 1
    for index in range(last, max(executed_steps, 0) - 1, -1):
        if elapsed >= parse_duration(chain[index].after):
            return ApplicableStep(step=chain[index], index=index, is_final_step=index == last)
    return None


def escalation_target(step: EscalationStep) -> AssignmentTarget:
    return AssignmentTarget(user_id=step.to_user_id, group_id=step.to_group_id)


def default_escalation_target(task: TaskResult) -> AssignmentTarget:
    """No chain: keep the current assignment (status still becomes escalated)."""
    return task.assignment


def should_escalate_on_breach(task: TaskResult, now: datetime | None = None) -> bool:
    """True for an open task whose deadline has passed."""
    if task.due_at is None or TaskStatus(task.status) not in OPEN_STATUSES:
        return False
    return is_breached(task.due_at, now)


def build_escalation_reason(
    task: TaskResult,
    step: EscalationStep | None = None,
    automatic: bool = True,
    now: datetime | None = None,
) -> str:
    """e.g. "Automatic escalation due to SLA breach - Escalating to managers"."""
    parts = ["Automatic escalation" if automatic else "Manual escalation"]
    if task.due_at is not None and is_breached(task.due_at, now):
        parts.append("due to SLA breach")
    if step is not None and step.message:
        parts.append(f"- {step.message}")
    return " ".join(parts)


class EscalationProcessor:
    """Computes automatic and manual escalation outcomes for a task."""

    def process_auto_escalation(
        self,
        task: TaskResult,
        executed_steps: int | None = None,
        now: datetime | None = None,
    ) -> EscalationResult:
        """Decide the automatic escalation for task at now.

        executed_steps defaults to task.escalation_level. With no chain, or
        once the chain is exhausted, a breached open task gets the default
        escalation (status escalated, assignment kept).
        """
        now = now or utc_now()
        executed = task.escalation_level if executed_steps is None else executed_steps
        chain = parse_escalation_config(task.escalation_config)
        if task.escalation_config and chain is None:
            logger.warning("Ignoring malformed escalation config on task %s", task.id)

        applicable = (
            get_applicable_step(chain, task.created_at, executed, now) if chain else None
        )
        if applicable is None:
            chain_done = not chain or executed >= len(chain)
            if chain_done and should_escalate_on_breach(task, now):
                return EscalationResult(
                    escalated=True,
                    is_final_step=True,
                    action=EscalationAction.ESCALATE,
                    target=default_escalation_target(task),
                    reason=build_escalation_reason(task, None, True, now),
                    is_default=True,
                )
            return EscalationResult(escalated=False, is_final_step=chain_done)

        step = applicable.step
        skipped = tuple(
            i
            for i in range(max(executed, 0), applicable.index)
            if chain[i].action == EscalationAction.NOTIFY
        )
        return EscalationResult(
            escalated=True,
            is_final_step=applicable.is_final_step,
            action=step.action,
            target=escalation_target(step) if step.has_target else None,
            reason=build_escalation_reason(task, step, True, now),
            step_index=applicable.index,
            skipped_notify_steps=skipped,
        )

    def process_manual_escalation(
        self,
        task: TaskResult,
        target: AssignmentTarget | None = None,
        reason: str | None = None,
        now: datetime | None = None,
    ) -> EscalationResult:
        """Target priority: explicit target, first chain step, current assignment."""
        resolved = target if target is not None and not target.is_empty else None
        if resolved is None:
            chain = parse_escalation_config(task.escalation_config)
            if chain and chain[0].has_target:
                resolved = escalation_target(chain[0])
        if resolved is None:
            resolved = default_escalation_target(task)
        return EscalationResult(
            escalated=True,
            is_final_step=True,
            action=EscalationAction.ESCALATE,
            target=resolved,
            reason=reason or build_escalation_reason(task, None, False, now),
        )
