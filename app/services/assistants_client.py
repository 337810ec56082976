import logging
from typing import Any

import httpx

from app.services.errors import Stage, TransportError

logger = logging.getLogger(__name__)


class AssistantsClient:
    """Minimal client for the OpenAI Assistants v2 thread/run endpoints.

    Every method issues exactly one HTTP request. Any non-2xx response or
    network failure is raised as a TransportError tagged with its stage.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        beta: str = "assistants=v2",
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._http = httpx.Client(
            base_url=base_url,
            headers={
                "Authorization": f"Bearer {api_key}",
                "OpenAI-Beta": beta,
            },
            timeout=timeout,
            transport=transport,
        )

    def __enter__(self) -> "AssistantsClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    @staticmethod
    def require_id(stage: Stage, payload: dict[str, Any]) -> str:
        """Return the object id of a create response, or fail the stage without one."""
        object_id = payload.get("id")
        if not isinstance(object_id, str) or not object_id:
            logger.error("%s response has no object id", stage.value)
            raise TransportError(stage, reason="missing id")
        return object_id

    def _request(self, stage: Stage, method: str, path: str, body: dict | None = None) -> dict[str, Any]:
        try:
            response = self._http.request(method, path, json=body)
        except httpx.HTTPError as exc:
            logger.error("%s request to %s failed: %s", stage.value, path, exc)
            raise TransportError(stage, reason=type(exc).__name__) from exc

        if not response.is_success:
            logger.error("%s returned HTTP %d", stage.value, response.status_code)
            raise TransportError(stage, status_code=response.status_code)

        try:
            payload = response.json()
        except ValueError as exc:
            raise TransportError(stage, reason="invalid JSON body") from exc

        if not isinstance(payload, dict):
            logger.error("%s returned a non-object body", stage.value)
            raise TransportError(stage, reason="unexpected body")
        return payload

    def create_thread(self, prompt: str) -> dict[str, Any]:
        return self._request(
            Stage.CREATE_THREAD,
            "POST",
            "/threads",
            {"messages": [{"role": "user", "content": prompt}]},
        )

    def create_run(self, thread_id: str, assistant_id: str) -> dict[str, Any]:
        return self._request(
            Stage.CREATE_RUN,
            "POST",
            f"/threads/{thread_id}/runs",
            {"assistant_id": assistant_id},
        )

    def retrieve_run(self, thread_id: str, run_id: str) -> dict[str, Any]:
        return self._request(Stage.POLL_RUN, "GET", f"/threads/{thread_id}/runs/{run_id}")

    def list_messages(self, thread_id: str) -> dict[str, Any]:
        return self._request(Stage.FETCH_MESSAGES, "GET", f"/threads/{thread_id}/messages")
