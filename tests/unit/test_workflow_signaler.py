"""Tests for HttpWorkflowSignaler against httpx.MockTransport."""

import json

import httpx
import pytest
from pydantic import SecretStr

from app.core.config import Settings
from app.infrastructure.services.workflow_signaler import HttpWorkflowSignaler


def _signaler(handler, **kwargs) -> HttpWorkflowSignaler:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpWorkflowSignaler("http://engine:8080/", http_client=client, **kwargs)


async def test_signal_posts_execution_and_payload() -> None:
    """Body carries workflow execution, signal name and payload as input."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={})

    signaler = _signaler(handler, namespace="prod", api_token="s3cret")
    ok = await signaler.signal("wf 1", "run-1", "taskCompleted", {"taskId": "tsk_1"})

    assert ok is True
    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == (
        "http://engine:8080/api/v1/namespaces/prod/workflows/wf%201/signal/taskCompleted"
    )
    assert request.headers["Authorization"] == "Bearer s3cret"
    assert json.loads(request.content) == {
        "workflowExecution": {"workflowId": "wf 1", "runId": "run-1"},
        "signalName": "taskCompleted",
        "input": {"taskId": "tsk_1"},
    }


async def test_no_token_no_authorization_header() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(204)

    assert await _signaler(handler).signal("wf", "run", "taskCancelled", {}) is True
    assert "Authorization" not in seen[0].headers


async def test_non_2xx_returns_false() -> None:
    signaler = _signaler(lambda request: httpx.Response(404, json={"message": "not found"}))
    assert await signaler.signal("wf", "run", "taskEscalated", {}) is False


async def test_transport_error_returns_false() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    assert await _signaler(handler).signal("wf", "run", "taskCompleted", {}) is False


async def test_injected_client_is_not_closed() -> None:
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
    signaler = HttpWorkflowSignaler("http://engine", http_client=client)
    await signaler.aclose()
    assert client.is_closed is False
    await client.aclose()


class TestFromSettings:
    def test_disabled_without_base_url(self) -> None:
        assert HttpWorkflowSignaler.from_settings(Settings(workflow_signal_base_url="")) is None

    def test_uses_settings(self) -> None:
        signaler = HttpWorkflowSignaler.from_settings(
            Settings(
                workflow_signal_base_url="http://engine:8080",
                workflow_namespace="ops",
                workflow_signal_timeout_seconds=3.0,
                workflow_api_token=SecretStr("tok"),
            )
        )
        assert signaler is not None
        assert signaler.namespace == "ops"
        assert signaler.timeout_seconds == 3.0
        assert signaler.signal_url("wf-1", "taskCompleted") == (
            "http://engine:8080/api/v1/namespaces/ops/workflows/wf-1/signal/taskCompleted"
        )


@pytest.mark.parametrize("status_code", [200, 201, 202, 204])
async def test_any_2xx_is_success(status_code: int) -> None:
    signaler = _signaler(lambda request: httpx.Response(status_code))
    assert await signaler.signal("wf", "run", "taskCompleted", {}) is True
