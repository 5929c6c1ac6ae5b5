"""Durable workflow signaling over the workflow engine's HTTP API.

Signals are addressed by (workflow id, run id, signal name). Delivery is
best-effort: transport errors and non-2xx responses return False.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx

from app.core.config import Settings
from app.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class HttpWorkflowSignaler:
    """IWorkflowSignaler posting to {base}/api/v1/namespaces/{ns}/workflows/{id}/signal/{name}.

    Pass http_client for DI/testing (e.g. httpx.MockTransport); otherwise a
    client is created on first use and closed by aclose().
    """

    def __init__(
        self,
        base_url: str,
        namespace: str = "default",
        timeout_seconds: float = 10.0,
        api_token: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.namespace = namespace
        self.timeout_seconds = timeout_seconds
        self._api_token = api_token
        self._http = http_client
        self._owns_client = http_client is None

    @classmethod
    def from_settings(cls, settings: Settings) -> HttpWorkflowSignaler | None:
        """Signaler from settings, or None when no base URL is configured."""
        if not settings.workflow_signal_base_url:
            return None
        return cls(
            base_url=settings.workflow_signal_base_url,
            namespace=settings.workflow_namespace,
            timeout_seconds=settings.workflow_signal_timeout_seconds,
            api_token=(
                settings.workflow_api_token.get_secret_value()
                if settings.workflow_api_token
                else None
            ),
        )

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.timeout_seconds)
        return self._http

    def signal_url(self, workflow_id: str, signal_name: str) -> str:
        return (
            f"{self.base_url}/api/v1/namespaces/{quote(self.namespace, safe='')}"
            f"/workflows/{quote(workflow_id, safe='')}/signal/{quote(signal_name, safe='')}"
        )

    async def signal(
        self,
        workflow_id: str,
        run_id: str,
        signal_name: str,
        payload: dict[str, Any],
    ) -> bool:
        """POST the signal; True on 2xx."""
        headers = {"Content-Type": "application/json"}
        if self._api_token:
            headers["Authorization"] = f"Bearer {self._api_token}"
        body = {
            "workflowExecution": {"workflowId": workflow_id, "runId": run_id},
            "signalName": signal_name,
            "input": payload,
        }
        try:
            resp = await self._client().post(
                self.signal_url(workflow_id, signal_name), headers=headers, json=body
            )
        except httpx.HTTPError as e:
            logger.warning(
                "Workflow signal %s to %s failed: %s", signal_name, workflow_id, e
            )
            return False
        if resp.is_success:
            logger.debug("Signaled %s to workflow %s (run %s)", signal_name, workflow_id, run_id)
            return True
        logger.warning(
            "Workflow signal %s to %s returned HTTP %d",
            signal_name,
            workflow_id,
            resp.status_code,
        )
        return False

    async def aclose(self) -> None:
        """Close the owned HTTP client (call on shutdown)."""
        if self._http is not None and self._owns_client:
            await self._http.aclose()
            self._http = None
