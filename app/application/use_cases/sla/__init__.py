"""SLA use cases: periodic warning and escalation sweep."""

from app.application.use_cases.sla.run_sla_sweep import RunSlaSweepUseCase

__all__ = ["RunSlaSweepUseCase"]
