from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

RUN_COMPLETED = "completed"
RUN_TIMEOUT = "timeout"


@dataclass
class AssistantRun:
    id: str
    status: str
    last_error: Optional[dict] = None

    @property
    def completed(self) -> bool:
        return self.status == RUN_COMPLETED


@dataclass
class ThreadMessage:
    id: str
    role: str
    content: List[dict] = field(default_factory=list)

    def first_text(self) -> Optional[str]:
        """Text value of the first content part, if it is a text part."""
        if not self.content:
            return None
        part = self.content[0]
        if part.get("type") != "text":
            return None
        return (part.get("text") or {}).get("value") or None


class AssistantProvider(ABC):
    """Abstract base class for hosted assistant services with server-side threads."""

    @abstractmethod
    async def create_thread(self) -> str:
        """Create an empty thread and return its id."""
        pass

    @abstractmethod
    async def add_user_message(self, thread_id: str, text: str) -> str:
        """Append a user turn to the thread, returning the message id."""
        pass

    @abstractmethod
    async def run_until_complete(self, thread_id: str) -> AssistantRun:
        """Start a run on the thread and wait for a terminal status."""
        pass

    @abstractmethod
    async def list_messages(self, thread_id: str, limit: int = 5) -> List[ThreadMessage]:
        """Most recent messages in the thread, newest first."""
        pass
