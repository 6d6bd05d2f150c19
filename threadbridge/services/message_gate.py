from dataclasses import dataclass
from typing import Optional

from threadbridge.logging_config import get_logger
from threadbridge.schemas.telegram import TelegramUpdate
from threadbridge.services.session_store import SessionKey

logger = get_logger("message_gate")


@dataclass(frozen=True)
class GateDecision:
    session_key: SessionKey
    text: str
    chat_id: int
    message_id: int


class MessageGate:
    """Decides whether an update is addressed to the bot and normalizes its text."""

    def __init__(self, bot_username: str):
        self.bot_username = bot_username.lstrip("@")

    @property
    def mention(self) -> str:
        return f"@{self.bot_username}"

    def handle(self, update: TelegramUpdate) -> Optional[GateDecision]:
        message = update.message
        if message is None or not message.text:
            return None

        text = message.text.strip()

        if not message.chat.is_private:
            # Groups: only messages that mention the bot
            if self.mention not in text:
                return None
            text = text.replace(self.mention, "", 1).strip()

        if not text:
            return None

        participant_id = message.from_user.id if message.from_user else None
        decision = GateDecision(
            session_key=SessionKey(message.chat.id, participant_id),
            text=text,
            chat_id=message.chat.id,
            message_id=message.message_id,
        )
        logger.debug(
            "Update accepted",
            extra={"context": {"session_key": str(decision.session_key), "chat_type": message.chat.type}},
        )
        return decision
