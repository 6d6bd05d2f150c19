from threadbridge.models.assistant_session import AssistantSession

__all__ = ["AssistantSession"]
