"""Redis Pub/Sub for task lifecycle notifications.

Publishes task events (created, assigned, escalated, completed, SLA
warning/breach) to a per-tenant channel. Subscribers (chat bots, e-mail
workers, UIs) fan them out to people.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

import redis.asyncio as redis

from app.application.dtos.task import TaskResult
from app.core.config import Settings
from app.shared.utils.datetime import isoformat_utc, utc_now

logger = logging.getLogger(__name__)


class TaskEventType(str, Enum):
    """Kinds of task notification published to Redis."""

    CREATED = "task_created"
    ASSIGNED = "task_assigned"
    ESCALATED = "task_escalated"
    COMPLETED = "task_completed"
    SLA_WARNING = "sla_warning"
    SLA_BREACH = "sla_breach"


@dataclass
class TaskEvent:
    """Task notification payload for Redis."""

    event_type: TaskEventType
    task_id: str
    tenant_id: str
    title: str
    status: str
    priority: str
    timestamp: str
    assigned_user_id: str | None = None
    assigned_group_id: str | None = None
    due_at: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def for_task(
        cls, event_type: TaskEventType, task: TaskResult, **extra: Any
    ) -> TaskEvent:
        return cls(
            event_type=event_type,
            task_id=task.id,
            tenant_id=task.tenant_id,
            title=task.title,
            status=task.status,
            priority=task.priority,
            timestamp=isoformat_utc(utc_now()),
            assigned_user_id=task.assigned_user_id,
            assigned_group_id=task.assigned_group_id,
            due_at=isoformat_utc(task.due_at) if task.due_at else None,
            extra=extra,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON publish."""
        data = asdict(self)
        data["event_type"] = self.event_type.value
        return data


class RedisTaskNotifier:
    """ITaskNotifier that publishes TaskEvent JSON to "{prefix}:{tenant_id}".

    Returns False (never raises) when Redis is unavailable or publish fails.
    """

    def __init__(self, settings: Settings, redis_client: redis.Redis | None = None) -> None:
        """Initialize. Pass redis_client for DI/testing."""
        self.settings = settings
        self.redis = redis_client
        self.channel_prefix = settings.redis_channel_prefix
        self._connected = redis_client is not None

    async def connect(self) -> None:
        """Establish Redis connection. Call on startup."""
        if self._connected:
            return
        if self.redis is None:
            try:
                self.redis = redis.Redis(
                    host=self.settings.redis_host,
                    port=self.settings.redis_port,
                    db=self.settings.redis_db,
                    password=self.settings.redis_password.get_secret_value() if self.settings.redis_password else None,
                    decode_responses=True,
                    socket_connect_timeout=5,
                )
                await self.redis.ping()
                self._connected = True
                logger.info("Redis task notifier connected")
            except (redis.ConnectionError, redis.TimeoutError) as e:
                logger.warning("Redis task notifier connection failed: %s", e)
                self._connected = False
                self.redis = None

    async def disconnect(self) -> None:
        """Close Redis connection. Call on shutdown."""
        if self.redis:
            await self.redis.aclose()
            self._connected = False
            logger.info("Redis task notifier disconnected")

    def is_available(self) -> bool:
        """Return True if Redis is connected."""
        return self._connected and self.redis is not None

    def _get_channel(self, tenant_id: str) -> str:
        """Channel name for tenant."""
        return f"{self.channel_prefix}:{tenant_id}"

    async def publish(self, event: TaskEvent) -> bool:
        """Publish event to its tenant channel. False if Redis is unavailable."""
        if not self.is_available() or self.redis is None:
            logger.debug("Redis not available, skipping publish")
            return False
        try:
            channel = self._get_channel(event.tenant_id)
            await self.redis.publish(channel, json.dumps(event.to_dict()))
            logger.debug(
                "Published %s for task %s to %s",
                event.event_type.value,
                event.task_id,
                channel,
            )
        except Exception:
            logger.exception("Failed to publish task event")
            return False
        else:
            return True

    async def task_created(self, task: TaskResult) -> bool:
        return await self.publish(TaskEvent.for_task(TaskEventType.CREATED, task))

    async def task_assigned(self, task: TaskResult, user_id: str) -> bool:
        return await self.publish(
            TaskEvent.for_task(TaskEventType.ASSIGNED, task, user_id=user_id)
        )

    async def task_escalated(self, task: TaskResult, reason: str | None = None) -> bool:
        return await self.publish(
            TaskEvent.for_task(
                TaskEventType.ESCALATED,
                task,
                reason=reason,
                escalation_level=task.escalation_level,
            )
        )

    async def task_completed(self, task: TaskResult) -> bool:
        return await self.publish(
            TaskEvent.for_task(TaskEventType.COMPLETED, task, completed_by=task.completed_by)
        )

    async def sla_warning(self, task: TaskResult, minutes_remaining: int) -> bool:
        return await self.publish(
            TaskEvent.for_task(
                TaskEventType.SLA_WARNING, task, minutes_remaining=minutes_remaining
            )
        )

    async def sla_breach(self, task: TaskResult) -> bool:
        return await self.publish(TaskEvent.for_task(TaskEventType.SLA_BREACH, task))
