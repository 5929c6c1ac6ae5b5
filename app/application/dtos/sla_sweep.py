"""DTOs for the SLA sweep use case."""

from dataclasses import dataclass, field


@dataclass
class SlaSweepResult:
    """Counts from one sweep pass (one tenant or all tenants)."""

    tenants_processed: int = 0
    tasks_examined: int = 0
    warnings_sent: int = 0
    escalations_applied: int = 0
    errors: list[str] = field(default_factory=list)
