"""Application use cases: one entry point per workflow."""

from app.application.use_cases.sla import RunSlaSweepUseCase

__all__ = ["RunSlaSweepUseCase"]
