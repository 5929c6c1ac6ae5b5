"""Composition root: builds the task service and its collaborators from settings.

Single place for startup/shutdown wiring (SRP). Every collaborator is
constructed explicitly here and handed to the task service; there are no
module-level singletons. Callers (a transport, a poller, scripts) use
task_runtime() as an async context manager.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from app.application.interfaces.services import ITaskNotifier, IWorkflowSignaler
from app.application.services.assignment_resolver import AssignmentResolver
from app.application.services.escalation_processor import EscalationProcessor
from app.application.services.task_service import (
    NoOpTaskNotifier,
    TaskService,
    TaskSignalNames,
)
from app.application.use_cases.sla import RunSlaSweepUseCase
from app.core.config import Settings, get_settings
from app.infrastructure.messaging.redis_pubsub import RedisTaskNotifier
from app.infrastructure.persistence.database import create_engine_from_settings
from app.infrastructure.persistence.repositories.group_repo import SqlGroupMemberLookup
from app.infrastructure.persistence.store import SqlTaskStore
from app.infrastructure.services.task_notification_service import LogOnlyTaskNotifier
from app.infrastructure.services.workflow_signaler import HttpWorkflowSignaler
from app.shared.telemetry.telemetry import TelemetryConfig, telemetry_from_settings

logger = logging.getLogger(__name__)


@dataclass
class TaskRuntime:
    """Wired services plus the resources that need closing on shutdown."""

    settings: Settings
    store: SqlTaskStore
    task_service: TaskService
    sla_sweep: RunSlaSweepUseCase
    notifier: ITaskNotifier
    signaler: IWorkflowSignaler | None
    telemetry: TelemetryConfig


def build_notifier(settings: Settings) -> ITaskNotifier:
    """Notifier for settings.notification_backend ("log", "redis" or "none")."""
    if settings.notification_backend == "redis":
        return RedisTaskNotifier(settings)
    if settings.notification_backend == "none":
        return NoOpTaskNotifier()
    return LogOnlyTaskNotifier()


def build_task_service(
    settings: Settings,
    store: SqlTaskStore,
    notifier: ITaskNotifier | None = None,
    signaler: IWorkflowSignaler | None = None,
) -> TaskService:
    """Task service over store with settings-driven assignment and signal names."""
    resolver = AssignmentResolver(
        SqlGroupMemberLookup(store.session_factory),
        pick_group_member=settings.assignment_pick_group_member,
    )
    return TaskService(
        store,
        resolver,
        escalation_processor=EscalationProcessor(),
        notifier=notifier,
        signaler=signaler,
        signal_names=TaskSignalNames(
            completed=settings.task_completed_signal,
            cancelled=settings.task_cancelled_signal,
            escalated=settings.task_escalated_signal,
        ),
    )


@asynccontextmanager
async def task_runtime(settings: Settings | None = None) -> AsyncIterator[TaskRuntime]:
    """Build the runtime, yield it, then release resources.

    Startup order: telemetry, SQL engine, notifier, signaler. Shutdown
    order: signaler client close, notifier disconnect, SQL engine dispose,
    telemetry shutdown.
    """
    settings = settings or get_settings()

    # ---- Startup ----
    telemetry = telemetry_from_settings(settings)
    engine = create_engine_from_settings(settings)
    telemetry.instrument_sqlalchemy(engine)
    store = SqlTaskStore(engine)

    notifier = build_notifier(settings)
    if isinstance(notifier, RedisTaskNotifier):
        await notifier.connect()
    signaler = HttpWorkflowSignaler.from_settings(settings)

    task_service = build_task_service(settings, store, notifier, signaler)
    runtime = TaskRuntime(
        settings=settings,
        store=store,
        task_service=task_service,
        sla_sweep=RunSlaSweepUseCase(task_service, settings.sla_sweep_batch_size),
        notifier=notifier,
        signaler=signaler,
        telemetry=telemetry,
    )
    logger.info(
        "Task runtime ready (notifications=%s, signaling=%s)",
        settings.notification_backend,
        "on" if signaler else "off",
    )
    try:
        yield runtime
    finally:
        # ---- Shutdown ----
        if signaler is not None:
            await signaler.aclose()
        if isinstance(notifier, RedisTaskNotifier):
            await notifier.disconnect()
        await store.dispose()
        telemetry.shutdown()
        logger.info("Task runtime shut down")
