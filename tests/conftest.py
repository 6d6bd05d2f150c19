from typing import List

import pytest

from threadbridge.config import Settings
from threadbridge.services.assistant.base import AssistantProvider, AssistantRun, ThreadMessage
from threadbridge.services.session_store import JsonFileSessionStore


class FakeAssistant(AssistantProvider):
    """In-memory stand-in for the Assistants API."""

    def __init__(self, run_status: str = "completed", reply: str | None = "Hi there"):
        self.run_status = run_status
        self.reply = reply
        self.threads: dict[str, List[ThreadMessage]] = {}
        self.created = 0
        self.fail_create: Exception | None = None

    async def create_thread(self) -> str:
        if self.fail_create:
            raise self.fail_create
        self.created += 1
        thread_id = f"thread_{self.created}"
        self.threads[thread_id] = []
        return thread_id

    async def add_user_message(self, thread_id: str, text: str) -> str:
        messages = self.threads[thread_id]
        message_id = f"msg_{len(messages) + 1}"
        messages.append(ThreadMessage(id=message_id, role="user", content=[{"type": "text", "text": {"value": text}}]))
        return message_id

    async def run_until_complete(self, thread_id: str) -> AssistantRun:
        if self.run_status == "completed" and self.reply is not None:
            messages = self.threads[thread_id]
            messages.append(
                ThreadMessage(
                    id=f"msg_{len(messages) + 1}",
                    role="assistant",
                    content=[{"type": "text", "text": {"value": self.reply}}],
                )
            )
        return AssistantRun(id="run_1", status=self.run_status)

    async def list_messages(self, thread_id: str, limit: int = 5) -> List[ThreadMessage]:
        return list(reversed(self.threads[thread_id]))[:limit]


@pytest.fixture
def fake_assistant():
    return FakeAssistant()


@pytest.fixture
def threads_file(tmp_path):
    return tmp_path / "threads.json"


@pytest.fixture
def json_store(threads_file):
    store = JsonFileSessionStore(threads_file)
    store.load()
    return store


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        telegram_token="test-token",
        openai_api_key="test-key",
        assistant_id="asst_test",
        bot_secret="s3cret",
        external_url="https://bot.example.com",
        bot_username="TestBot",
        threads_file=str(tmp_path / "threads.json"),
    )
