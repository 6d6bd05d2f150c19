import asyncio
from typing import List, Optional

import httpx

from threadbridge.errors import AssistantServiceError, UpstreamSessionCreateFailure
from threadbridge.logging_config import get_logger
from threadbridge.services.assistant.base import RUN_TIMEOUT, AssistantProvider, AssistantRun, ThreadMessage

logger = get_logger("assistant.openai")

PENDING_RUN_STATUSES = {"queued", "in_progress", "cancelling"}


class OpenAIAssistantsProvider(AssistantProvider):
    """OpenAI Assistants API (v2) provider."""

    def __init__(
        self,
        api_key: str,
        assistant_id: str,
        base_url: str = "https://api.openai.com/v1",
        timeout_seconds: float = 60.0,
        poll_interval: float = 1.0,
        max_poll_attempts: int = 120,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.assistant_id = assistant_id
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.poll_interval = poll_interval
        self.max_poll_attempts = max(max_poll_attempts, 1)
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout_seconds,
            transport=self.transport,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
                "OpenAI-Beta": "assistants=v2",
            },
        )

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[dict] = None,
        params: Optional[dict] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> dict:
        if client is None:
            async with self._client() as own_client:
                return await self._request(method, path, json=json, params=params, client=own_client)

        response = await client.request(method, path, json=json, params=params)
        logger.debug(f"OpenAI {method} {path} -> {response.status_code}")

        if not response.is_success:
            logger.error(f"OpenAI error: {response.text}")
            raise AssistantServiceError(
                f"OpenAI API error: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )
        return response.json()

    async def create_thread(self) -> str:
        try:
            data = await self._request("POST", "/threads", json={})
        except (AssistantServiceError, httpx.HTTPError, ValueError) as e:
            raise UpstreamSessionCreateFailure(f"Thread creation failed: {e}") from e

        thread_id = data.get("id")
        if not thread_id:
            raise UpstreamSessionCreateFailure(f"Thread creation returned no id: {data}")
        logger.info("Thread created", extra={"context": {"thread_id": thread_id}})
        return thread_id

    async def add_user_message(self, thread_id: str, text: str) -> str:
        data = await self._request(
            "POST",
            f"/threads/{thread_id}/messages",
            json={"role": "user", "content": text},
        )
        return data.get("id", "")

    async def run_until_complete(self, thread_id: str) -> AssistantRun:
        async with self._client() as client:
            data = await self._request(
                "POST",
                f"/threads/{thread_id}/runs",
                json={"assistant_id": self.assistant_id},
                client=client,
            )
            run = _parse_run(data)

            attempts = 0
            while run.status in PENDING_RUN_STATUSES:
                if attempts >= self.max_poll_attempts:
                    logger.warning(
                        "Run polling gave up",
                        extra={"context": {"thread_id": thread_id, "run_id": run.id, "last_status": run.status}},
                    )
                    return AssistantRun(id=run.id, status=RUN_TIMEOUT)
                await asyncio.sleep(self.poll_interval)
                attempts += 1
                data = await self._request("GET", f"/threads/{thread_id}/runs/{run.id}", client=client)
                run = _parse_run(data)

        logger.info(
            "Run finished",
            extra={"context": {"thread_id": thread_id, "run_id": run.id, "status": run.status, "polls": attempts}},
        )
        return run

    async def list_messages(self, thread_id: str, limit: int = 5) -> List[ThreadMessage]:
        data = await self._request(
            "GET",
            f"/threads/{thread_id}/messages",
            params={"limit": limit, "order": "desc"},
        )
        return [
            ThreadMessage(id=item.get("id", ""), role=item.get("role", ""), content=item.get("content") or [])
            for item in data.get("data") or []
        ]


def _parse_run(data: dict) -> AssistantRun:
    return AssistantRun(id=data.get("id", ""), status=data.get("status", ""), last_error=data.get("last_error"))
