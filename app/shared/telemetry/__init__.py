"""Logging setup and OpenTelemetry tracing for task operations."""

from app.shared.telemetry.logging import get_logger, setup_logging
from app.shared.telemetry.telemetry import TelemetryConfig, telemetry_from_settings
from app.shared.telemetry.tracing import add_span_attributes, traced

__all__ = [
    "TelemetryConfig",
    "add_span_attributes",
    "get_logger",
    "setup_logging",
    "telemetry_from_settings",
    "traced",
]
