"""DTOs for escalation decisions (no dependency on ORM)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from app.application.dtos.task import AssignmentTarget
from app.domain.enums import EscalationAction

if TYPE_CHECKING:
    from app.schemas.escalation import EscalationStep


@dataclass(frozen=True)
class ApplicableStep:
    """Chain step selected by get_applicable_step."""

    step: EscalationStep
    index: int
    is_final_step: bool


@dataclass(frozen=True)
class EscalationResult:
    """What an escalation (automatic or manual) should do to a task.

    escalated is False when nothing applies yet. step_index is None for
    default (no chain / exhausted chain) and manual escalations without a
    chain step. skipped_notify_steps lists earlier notify steps passed over
    by skip-ahead so their notifications can still be sent.
    """

    escalated: bool
    is_final_step: bool
    action: EscalationAction | None = None
    target: AssignmentTarget | None = None
    reason: str | None = None
    step_index: int | None = None
    is_default: bool = False
    skipped_notify_steps: tuple[int, ...] = field(default_factory=tuple)

    @property
    def next_level(self) -> int | None:
        """escalation_level after applying this result (None leaves it unchanged)."""
        return None if self.step_index is None else self.step_index + 1
