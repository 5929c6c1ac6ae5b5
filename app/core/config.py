"""Application configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. Values are validated at load time, not at import.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment and .env.

    Only database_url is needed to run against Postgres; every other
    setting has a working default (log-only notifications, no workflow
    signaling, console tracing).
    """

    # App
    app_name: str = "taskdesk"
    app_version: str = "1.0.0"
    debug: bool = False

    # Database (SQLAlchemy async + Alembic). Empty URL = not configured.
    database_url: str = ""
    database_echo: bool = False
    db_pool_size: int | None = None
    db_max_overflow: int | None = None
    db_command_timeout: int | None = None

    # Assignment: pick a concrete member when a task is assigned to a group.
    assignment_pick_group_member: bool = True

    # Notifications: "log", "redis" or "none"
    notification_backend: str = "log"
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: SecretStr | None = None
    redis_channel_prefix: str = "task_events"

    # Durable workflow signaling (HTTP API of the workflow engine).
    # Empty base URL disables signaling.
    workflow_signal_base_url: str = ""
    workflow_namespace: str = "default"
    workflow_signal_timeout_seconds: float = 10.0
    workflow_api_token: SecretStr | None = None
    task_completed_signal: str = "taskCompleted"
    task_cancelled_signal: str = "taskCancelled"
    task_escalated_signal: str = "taskEscalated"

    # SLA sweep (one pass per invocation; scheduling is external)
    sla_sweep_batch_size: int = 200

    # OpenTelemetry
    telemetry_enabled: bool = False
    telemetry_exporter: str = "console"
    telemetry_otlp_endpoint: str | None = None
    telemetry_sample_rate: float = 1.0
    telemetry_environment: str = "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_backends(self) -> "Settings":
        """Validate backend selectors and numeric bounds."""
        if self.notification_backend not in ("log", "redis", "none"):
            raise ValueError(
                "notification_backend must be 'log', 'redis' or 'none', "
                f"got: {self.notification_backend!r}"
            )
        if self.telemetry_exporter not in ("console", "otlp", "none"):
            raise ValueError(
                f"Invalid telemetry_exporter '{self.telemetry_exporter}'. "
                "Must be one of: 'console', 'otlp', 'none'"
            )
        if self.sla_sweep_batch_size < 1:
            raise ValueError("sla_sweep_batch_size must be >= 1")
        if self.workflow_signal_timeout_seconds <= 0:
            raise ValueError("workflow_signal_timeout_seconds must be > 0")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() before overriding env vars so the next
    get_settings() uses the new values.

    Returns:
        Loaded and validated Settings instance.
    """
    return Settings()
