"""OpenTelemetry tracing setup for the task service.

Spans come from traced() on task service operations plus the SQLAlchemy
instrumentation of the task store engine. Exporter is chosen by
settings.telemetry_exporter: "otlp" (gRPC collector), "console" or "none".
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SpanExporter,
)
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from app.core.config import Settings

logger = logging.getLogger(__name__)


def build_span_exporter(exporter_type: str, otlp_endpoint: str | None) -> SpanExporter | None:
    """Exporter for exporter_type; otlp without an endpoint falls back to console."""
    if exporter_type == "none":
        return None
    if exporter_type == "otlp":
        if otlp_endpoint:
            return OTLPSpanExporter(
                endpoint=otlp_endpoint, insecure=otlp_endpoint.startswith("http://")
            )
        logger.warning("telemetry_exporter=otlp without telemetry_otlp_endpoint, using console")
    return ConsoleSpanExporter()


class TelemetryConfig:
    """Tracer provider lifecycle: setup at startup, instrument, flush on shutdown.

    A disabled config is a no-op; every method is safe to call.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.enabled = settings.telemetry_enabled
        self.tracer_provider: TracerProvider | None = None

    def setup(self) -> TracerProvider | None:
        """Install the global tracer provider. Returns None when disabled or on failure."""
        if not self.enabled:
            logger.info("Telemetry disabled")
            return None
        s = self.settings
        try:
            provider = TracerProvider(
                resource=Resource(
                    attributes={
                        SERVICE_NAME: s.app_name,
                        SERVICE_VERSION: s.app_version,
                        "deployment.environment": s.telemetry_environment,
                    }
                ),
                sampler=TraceIdRatioBased(s.telemetry_sample_rate),
            )
            exporter = build_span_exporter(s.telemetry_exporter, s.telemetry_otlp_endpoint)
            if exporter is not None:
                provider.add_span_processor(BatchSpanProcessor(exporter))
            trace.set_tracer_provider(provider)
        except Exception:
            logger.exception("Failed to initialize telemetry")
            return None
        self.tracer_provider = provider
        logger.info(
            "Tracing enabled: service=%s exporter=%s sample_rate=%s",
            s.app_name,
            s.telemetry_exporter,
            s.telemetry_sample_rate,
        )
        return provider

    @property
    def active(self) -> bool:
        return self.enabled and self.tracer_provider is not None

    def instrument_sqlalchemy(self, engine: AsyncEngine) -> None:
        """Trace statements issued by the task store engine."""
        if not self.active:
            return
        try:
            SQLAlchemyInstrumentor().instrument(
                engine=engine.sync_engine, tracer_provider=self.tracer_provider
            )
        except Exception:
            logger.exception("Failed to instrument SQLAlchemy")

    def instrument_logging(self) -> None:
        """Add trace_id/span_id to log records."""
        if not self.active:
            return
        try:
            LoggingInstrumentor().instrument(
                tracer_provider=self.tracer_provider, set_logging_format=True
            )
        except Exception:
            logger.exception("Failed to instrument logging")

    def shutdown(self) -> None:
        """Flush pending spans."""
        if self.tracer_provider is None:
            return
        try:
            self.tracer_provider.shutdown()
        except Exception:
            logger.exception("Error during telemetry shutdown")
        self.tracer_provider = None


def telemetry_from_settings(settings: Settings) -> TelemetryConfig:
    """Set up tracing and log correlation from settings (no-op config when disabled)."""
    telemetry = TelemetryConfig(settings)
    telemetry.setup()
    telemetry.instrument_logging()
    return telemetry
