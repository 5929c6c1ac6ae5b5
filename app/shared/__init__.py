"""Shared utilities: request context, telemetry, and cross-cutting helpers.

Used by domain, application, and infrastructure. No business logic.
"""

from app.shared.context import RequestContext
from app.shared.utils import (
    ensure_utc,
    generate_cuid,
    generate_history_id,
    generate_task_id,
    isoformat_utc,
    utc_now,
)

__all__ = [
    "RequestContext",
    "generate_cuid",
    "generate_task_id",
    "generate_history_id",
    "utc_now",
    "ensure_utc",
    "isoformat_utc",
]
