"""Shared utilities (datetime, id generation)."""

from app.shared.utils.datetime import ensure_utc, isoformat_utc, utc_now
from app.shared.utils.generators import (
    generate_cuid,
    generate_history_id,
    generate_task_id,
)

__all__ = [
    "utc_now",
    "ensure_utc",
    "isoformat_utc",
    "generate_cuid",
    "generate_task_id",
    "generate_history_id",
]
