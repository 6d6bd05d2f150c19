from threadbridge.services.assistant.base import AssistantProvider, AssistantRun, ThreadMessage
from threadbridge.services.assistant.openai_provider import OpenAIAssistantsProvider

__all__ = ["AssistantProvider", "AssistantRun", "ThreadMessage", "OpenAIAssistantsProvider"]
