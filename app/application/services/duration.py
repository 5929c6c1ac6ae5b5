"""Duration parsing and SLA time arithmetic.

Durations are "<number><unit>" strings ("500ms", "30s", "10m", "1.5h", "2d",
"1w"); units are case-sensitive and no whitespace is allowed. All values are
handled in whole milliseconds.
"""

from __future__ import annotations

import math
import re
from collections.abc import Sequence
from datetime import datetime
from typing import TYPE_CHECKING

from app.application.dtos.task import ComputedSla, SlaConfig, SlaStatus
from app.domain.exceptions import DurationParseException
from app.shared.utils.datetime import add_ms, diff_ms, ensure_utc, utc_now

if TYPE_CHECKING:
    from app.schemas.escalation import EscalationStep

_DURATION_RE = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h|d|w)", re.ASCII)

UNIT_MS: dict[str, int] = {
    "ms": 1,
    "s": 1_000,
    "m": 60_000,
    "h": 3_600_000,
    "d": 86_400_000,
    "w": 604_800_000,
}


def parse_duration(value: str) -> int:
    """Parse a duration string to milliseconds (rounded half up).

    Raises:
        DurationParseException: value is not a valid duration string.
    """
    match = _DURATION_RE.fullmatch(value) if isinstance(value, str) else None
    if match is None:
        raise DurationParseException(str(value))
    number, unit = match.groups()
    return math.floor(float(number) * UNIT_MS[unit] + 0.5)


def is_valid_duration(value: object) -> bool:
    return isinstance(value, str) and _DURATION_RE.fullmatch(value) is not None


def calculate_deadline(deadline: str | datetime, created_at: datetime | None = None) -> datetime:
    """created_at + duration; an absolute datetime is returned as-is (UTC)."""
    if isinstance(deadline, datetime):
        return ensure_utc(deadline)
    base = ensure_utc(created_at) if created_at else utc_now()
    return add_ms(base, parse_duration(deadline))


def calculate_warning_at(due_at: datetime, warn_before: str) -> datetime:
    """due_at - warn_before."""
    return add_ms(due_at, -parse_duration(warn_before))


def is_breached(due_at: datetime, now: datetime | None = None) -> bool:
    """True once now has reached the deadline."""
    return (now or utc_now()) >= ensure_utc(due_at)


def time_remaining_ms(due_at: datetime, now: datetime | None = None) -> int:
    """Signed milliseconds until due_at (negative once breached)."""
    return diff_ms(due_at, now or utc_now())


def format_remaining(ms: int) -> str:
    """Human-readable remaining time using the two largest units.

    >>> format_remaining(2 * 86_400_000 + 3 * 3_600_000)
    '2d 3h'
    >>> format_remaining(-45 * 60_000)
    '45m overdue'
    """
    if ms < 0:
        return f"{format_remaining(-ms)} overdue"
    seconds = ms // 1000
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24
    if days > 0:
        return f"{days}d {hours % 24}h" if hours % 24 else f"{days}d"
    if hours > 0:
        return f"{hours}h {minutes % 60}m" if minutes % 60 else f"{hours}h"
    if minutes > 0:
        return f"{minutes}m"
    return f"{seconds}s"


def is_in_warning_period(due_at: datetime, warn_before: str, now: datetime | None = None) -> bool:
    """True when 0 < remaining <= warn_before."""
    remaining = time_remaining_ms(due_at, now)
    return 0 < remaining <= parse_duration(warn_before)


def compute_sla(config: SlaConfig, created_at: datetime | None = None) -> ComputedSla:
    """Resolve due_at/warn_at for a new task. escalation is passed through unchanged."""
    due_at = calculate_deadline(config.deadline, created_at)
    warn_at = calculate_warning_at(due_at, config.warn_before) if config.warn_before else None
    return ComputedSla(
        due_at=due_at,
        warn_at=warn_at,
        escalation_config=config.escalation,
        on_breach=config.on_breach,
    )


def next_escalation_at(
    chain: Sequence[EscalationStep], created_at: datetime, executed_steps: int = 0
) -> datetime | None:
    """Earliest time any unexecuted chain step becomes due, or None if the chain is done."""
    remaining = chain[max(executed_steps, 0) :]
    if not remaining:
        return None
    return add_ms(ensure_utc(created_at), min(parse_duration(s.after) for s in remaining))


def get_sla_status(
    due_at: datetime,
    warn_before: str | None = None,
    warn_at: datetime | None = None,
    now: datetime | None = None,
) -> SlaStatus:
    """SLA snapshot. The warning window comes from warn_before, else from warn_at."""
    now = now or utc_now()
    remaining = time_remaining_ms(due_at, now)
    breached = is_breached(due_at, now)
    if breached:
        warning = False
    elif warn_before:
        warning = is_in_warning_period(due_at, warn_before, now)
    elif warn_at is not None:
        warning = now >= ensure_utc(warn_at)
    else:
        warning = False
    return SlaStatus(
        due_at=ensure_utc(due_at),
        breached=breached,
        warning=warning,
        time_remaining_ms=remaining,
        time_remaining_formatted=format_remaining(remaining),
    )
