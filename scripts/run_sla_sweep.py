"""Run one SLA sweep pass: send due SLA warnings and apply due escalations.

Usage:
    python -m scripts.run_sla_sweep [tenant_id]
If tenant_id is omitted, processes every tenant with open tasks.
Requires Postgres (DATABASE_URL). Schedule it externally (cron, workflow timer).
"""

import asyncio
import sys

from app.core.composition import task_runtime
from app.core.config import get_settings
from app.domain.exceptions import SqlNotConfiguredException
from app.shared.telemetry.logging import setup_logging


async def main() -> None:
    """Sweep one tenant or all tenants and print a summary."""
    settings = get_settings()
    setup_logging(settings)
    tenant_filter = sys.argv[1] if len(sys.argv) > 1 else None
    try:
        async with task_runtime(settings) as runtime:
            result = await runtime.sla_sweep.run(tenant_filter)
    except SqlNotConfiguredException as e:
        print(e.message, file=sys.stderr)
        sys.exit(1)

    print(
        f"Done. Tenants: {result.tenants_processed}, examined: {result.tasks_examined}, "
        f"warnings: {result.warnings_sent}, escalations: {result.escalations_applied}"
    )
    if result.errors:
        print(f"Failed tasks: {', '.join(result.errors)}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    asyncio.run(main())
