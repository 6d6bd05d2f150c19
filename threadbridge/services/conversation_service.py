import asyncio
from contextlib import asynccontextmanager

from threadbridge.errors import AssistantRunFailure
from threadbridge.logging_config import get_logger
from threadbridge.services.assistant.base import AssistantProvider
from threadbridge.services.session_resolver import SessionResolver
from threadbridge.services.session_store import SessionKey

logger = get_logger("conversation_service")

FALLBACK_REPLY = "No response."
DEFAULT_HISTORY_LIMIT = 5


class ConversationDriver:
    """Runs one user turn through the Assistant thread bound to a session."""

    def __init__(
        self,
        resolver: SessionResolver,
        assistant: AssistantProvider,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        fallback_reply: str = FALLBACK_REPLY,
    ):
        self.resolver = resolver
        self.assistant = assistant
        self.history_limit = history_limit
        self.fallback_reply = fallback_reply
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @asynccontextmanager
    async def _session_lock(self, key: str):
        # Entries live only while some turn holds or waits on the lock.
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]

    async def converse(self, key: SessionKey, text: str) -> str:
        """Send text as a user turn and return the assistant's reply.

        Turns for the same key are serialized; different keys run concurrently.
        A user turn that was appended stays in the thread even if the run fails.
        """
        async with self._session_lock(str(key)):
            thread_id = await self.resolver.resolve(key)

            await self.assistant.add_user_message(thread_id, text)

            run = await self.assistant.run_until_complete(thread_id)
            if not run.completed:
                logger.warning(
                    "Assistant run did not complete",
                    extra={"context": {"session_key": str(key), "thread_id": thread_id, "status": run.status}},
                )
                raise AssistantRunFailure(run.status)

            messages = await self.assistant.list_messages(thread_id, limit=self.history_limit)

        reply = next((m for m in messages if m.role == "assistant"), None)
        if reply is None:
            return self.fallback_reply
        return reply.first_text() or self.fallback_reply
