"""DTOs for assignee groups (read by the assignment resolver)."""

from dataclasses import dataclass

from app.domain.enums import AssignmentStrategyType


@dataclass(frozen=True)
class GroupInfo:
    """Group settings relevant to assignment."""

    id: str
    tenant_id: str
    name: str
    assignment_strategy: AssignmentStrategyType
    is_assignable: bool
