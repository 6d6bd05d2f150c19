from threadbridge.logging_config import get_logger
from threadbridge.services.assistant.base import AssistantProvider
from threadbridge.services.session_store import SessionKey, SessionRecord, SessionStore

logger = get_logger("session_resolver")


class SessionResolver:
    """Maps a SessionKey to an Assistant thread created under the active prompt version."""

    def __init__(self, store: SessionStore, assistant: AssistantProvider, prompt_version: str):
        self.store = store
        self.assistant = assistant
        self.prompt_version = prompt_version

    async def resolve(self, key: SessionKey) -> str:
        existing = self.store.get(key)
        if existing and existing.is_current(self.prompt_version):
            return existing.thread_id

        # Miss or stale version: never reuse a thread from other instructions.
        thread_id = await self.assistant.create_thread()
        self.store.put(key, SessionRecord(thread_id=thread_id, prompt_version=self.prompt_version))
        self.store.persist()

        logger.info(
            "New thread bound to session",
            extra={
                "context": {
                    "session_key": str(key),
                    "thread_id": thread_id,
                    "prompt_version": self.prompt_version,
                    "replaced": existing.thread_id if existing else None,
                }
            },
        )
        return thread_id
