import asyncio
import json

import httpx
import pytest

from threadbridge.errors import AssistantServiceError, UpstreamSessionCreateFailure
from threadbridge.services.assistant.openai_provider import OpenAIAssistantsProvider


def _provider(handler, **kwargs) -> OpenAIAssistantsProvider:
    return OpenAIAssistantsProvider(
        api_key="test-key",
        assistant_id="asst_123",
        poll_interval=0,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestCreateThread:
    def test_returns_thread_id_and_sends_headers(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["auth"] = request.headers["Authorization"]
            seen["beta"] = request.headers["OpenAI-Beta"]
            return httpx.Response(200, json={"id": "thread_abc", "object": "thread"})

        thread_id = asyncio.run(_provider(handler).create_thread())

        assert thread_id == "thread_abc"
        assert seen == {"path": "/v1/threads", "auth": "Bearer test-key", "beta": "assistants=v2"}

    def test_error_status_becomes_session_create_failure(self):
        def handler(request):
            return httpx.Response(500, json={"error": {"message": "down"}})

        with pytest.raises(UpstreamSessionCreateFailure):
            asyncio.run(_provider(handler).create_thread())

    def test_network_error_becomes_session_create_failure(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(UpstreamSessionCreateFailure):
            asyncio.run(_provider(handler).create_thread())

    def test_non_json_body_becomes_session_create_failure(self):
        def handler(request):
            return httpx.Response(200, text="<html>gateway</html>")

        with pytest.raises(UpstreamSessionCreateFailure):
            asyncio.run(_provider(handler).create_thread())


class TestAddUserMessage:
    def test_posts_user_role_content(self):
        captured = {}

        def handler(request):
            captured["path"] = request.url.path
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "msg_1"})

        message_id = asyncio.run(_provider(handler).add_user_message("thread_abc", "hello"))

        assert message_id == "msg_1"
        assert captured["path"] == "/v1/threads/thread_abc/messages"
        assert captured["body"] == {"role": "user", "content": "hello"}

    def test_created_status_is_success(self):
        def handler(request):
            return httpx.Response(201, json={"id": "msg_2"})

        assert asyncio.run(_provider(handler).add_user_message("thread_abc", "hello")) == "msg_2"

    def test_error_raises_service_error(self):
        def handler(request):
            return httpx.Response(400, json={"error": {"message": "active run"}})

        with pytest.raises(AssistantServiceError) as exc_info:
            asyncio.run(_provider(handler).add_user_message("thread_abc", "hello"))
        assert exc_info.value.status_code == 400


class TestRunUntilComplete:
    def test_polls_until_terminal(self):
        statuses = iter(["in_progress", "in_progress", "completed"])
        calls = []

        def handler(request):
            calls.append((request.method, request.url.path))
            if request.method == "POST":
                assert json.loads(request.content) == {"assistant_id": "asst_123"}
                return httpx.Response(200, json={"id": "run_1", "status": "queued"})
            return httpx.Response(200, json={"id": "run_1", "status": next(statuses)})

        run = asyncio.run(_provider(handler).run_until_complete("thread_abc"))

        assert run.status == "completed"
        assert run.completed
        assert calls[0] == ("POST", "/v1/threads/thread_abc/runs")
        assert calls[1:] == [("GET", "/v1/threads/thread_abc/runs/run_1")] * 3

    def test_failed_status_is_returned(self):
        def handler(request):
            if request.method == "POST":
                return httpx.Response(200, json={"id": "run_1", "status": "queued"})
            return httpx.Response(200, json={"id": "run_1", "status": "failed", "last_error": {"code": "server_error"}})

        run = asyncio.run(_provider(handler).run_until_complete("thread_abc"))

        assert run.status == "failed"
        assert not run.completed
        assert run.last_error == {"code": "server_error"}

    def test_gives_up_after_max_attempts(self):
        polls = []

        def handler(request):
            if request.method == "GET":
                polls.append(request.url.path)
            return httpx.Response(200, json={"id": "run_1", "status": "in_progress"})

        run = asyncio.run(_provider(handler, max_poll_attempts=3).run_until_complete("thread_abc"))

        assert run.status == "timeout"
        assert len(polls) == 3


class TestListMessages:
    def test_requests_newest_first_window(self):
        captured = {}

        def handler(request):
            captured["params"] = dict(request.url.params)
            return httpx.Response(
                200,
                json={
                    "data": [
                        {
                            "id": "msg_2",
                            "role": "assistant",
                            "content": [{"type": "text", "text": {"value": "Hi", "annotations": []}}],
                        },
                        {"id": "msg_1", "role": "user", "content": [{"type": "text", "text": {"value": "hello"}}]},
                    ]
                },
            )

        messages = asyncio.run(_provider(handler).list_messages("thread_abc", limit=5))

        assert captured["params"] == {"limit": "5", "order": "desc"}
        assert [m.role for m in messages] == ["assistant", "user"]
        assert messages[0].first_text() == "Hi"

    def test_empty_listing(self):
        def handler(request):
            return httpx.Response(200, json={"data": []})

        assert asyncio.run(_provider(handler).list_messages("thread_abc")) == []
