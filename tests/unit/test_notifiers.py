"""Tests for the log-only and Redis task notifiers."""

import json
import logging
from unittest.mock import AsyncMock

import pytest

from app.core.config import Settings
from app.infrastructure.messaging.redis_pubsub import (
    RedisTaskNotifier,
    TaskEvent,
    TaskEventType,
)
from app.infrastructure.services.task_notification_service import LogOnlyTaskNotifier
from tests.fakes import T0, make_task


@pytest.fixture
def redis_client() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def redis_notifier(redis_client: AsyncMock) -> RedisTaskNotifier:
    return RedisTaskNotifier(Settings(redis_channel_prefix="tasks"), redis_client=redis_client)


def _published(redis_client: AsyncMock) -> tuple[str, dict]:
    channel, message = redis_client.publish.await_args.args
    return channel, json.loads(message)


class TestRedisTaskNotifier:
    async def test_publishes_to_tenant_channel(self, redis_notifier, redis_client) -> None:
        task = make_task(due_at=T0, assigned_user_id="bob")
        assert await redis_notifier.task_assigned(task, "bob") is True

        channel, payload = _published(redis_client)
        assert channel == "tasks:t1"
        assert payload["event_type"] == "task_assigned"
        assert payload["task_id"] == "tsk_1"
        assert payload["assigned_user_id"] == "bob"
        assert payload["due_at"] == T0.isoformat()
        assert payload["extra"] == {"user_id": "bob"}

    async def test_escalated_carries_reason_and_level(self, redis_notifier, redis_client) -> None:
        task = make_task(status="escalated", escalation_level=2)
        await redis_notifier.task_escalated(task, "Automatic escalation")
        _, payload = _published(redis_client)
        assert payload["extra"] == {"reason": "Automatic escalation", "escalation_level": 2}

    async def test_sla_warning(self, redis_notifier, redis_client) -> None:
        await redis_notifier.sla_warning(make_task(), 5)
        _, payload = _published(redis_client)
        assert payload["event_type"] == "sla_warning"
        assert payload["extra"] == {"minutes_remaining": 5}

    async def test_publish_failure_returns_false(self, redis_notifier, redis_client) -> None:
        redis_client.publish.side_effect = ConnectionError("redis down")
        assert await redis_notifier.sla_breach(make_task()) is False

    async def test_unavailable_without_connection(self) -> None:
        notifier = RedisTaskNotifier(Settings())
        assert notifier.is_available() is False
        assert await notifier.task_created(make_task()) is False

    async def test_disconnect(self, redis_notifier, redis_client) -> None:
        await redis_notifier.disconnect()
        redis_client.aclose.assert_awaited_once()
        assert redis_notifier.is_available() is False


def test_task_event_serializes_event_type_value() -> None:
    event = TaskEvent.for_task(TaskEventType.COMPLETED, make_task(), completed_by="alice")
    data = event.to_dict()
    assert data["event_type"] == "task_completed"
    assert data["extra"] == {"completed_by": "alice"}
    assert json.loads(json.dumps(data)) == data


class TestLogOnlyTaskNotifier:
    async def test_every_event_is_delivered(self, caplog: pytest.LogCaptureFixture) -> None:
        notifier = LogOnlyTaskNotifier()
        task = make_task(due_at=T0)
        with caplog.at_level(logging.INFO):
            assert await notifier.task_created(task) is True
            assert await notifier.task_assigned(task, "bob") is True
            assert await notifier.task_escalated(task, "late") is True
            assert await notifier.task_completed(task) is True
            assert await notifier.sla_warning(task, 3) is True
            assert await notifier.sla_breach(task) is True
        assert "tsk_1 assigned to user bob" in caplog.text
        breach = [r for r in caplog.records if "SLA breached" in r.getMessage()]
        assert breach[0].levelno == logging.WARNING
