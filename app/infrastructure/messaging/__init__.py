"""Messaging: Redis pub/sub publisher for task notifications."""

from app.infrastructure.messaging.redis_pubsub import (
    RedisTaskNotifier,
    TaskEvent,
    TaskEventType,
)

__all__ = [
    "RedisTaskNotifier",
    "TaskEvent",
    "TaskEventType",
]
