from threadbridge.services.conversation_service import FALLBACK_REPLY, ConversationDriver
from threadbridge.services.message_gate import GateDecision, MessageGate
from threadbridge.services.session_resolver import SessionResolver
from threadbridge.services.session_store import (
    JsonFileSessionStore,
    SessionKey,
    SessionRecord,
    SessionStore,
    SqlSessionStore,
)
