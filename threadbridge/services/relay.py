from dataclasses import dataclass

from threadbridge.config import Settings
from threadbridge.logging_config import LoggerAdapter, get_logger
from threadbridge.schemas.telegram import TelegramUpdate
from threadbridge.services.assistant.openai_provider import OpenAIAssistantsProvider
from threadbridge.services.conversation_service import ConversationDriver
from threadbridge.services.message_gate import MessageGate
from threadbridge.services.session_resolver import SessionResolver
from threadbridge.services.session_store import SessionStore, build_session_store
from threadbridge.services.telegram_service import TelegramService

logger = get_logger("relay")


@dataclass
class Relay:
    gate: MessageGate
    driver: ConversationDriver
    telegram: TelegramService
    store: SessionStore


def build_relay(settings: Settings) -> Relay:
    """Wire store, resolver, driver and transport from settings."""
    store = build_session_store(settings)
    assistant = OpenAIAssistantsProvider(
        api_key=settings.openai_api_key,
        assistant_id=settings.assistant_id,
        base_url=settings.openai_base_url,
        timeout_seconds=settings.openai_timeout_seconds,
        poll_interval=settings.run_poll_interval_seconds,
        max_poll_attempts=settings.run_poll_max_attempts,
    )
    resolver = SessionResolver(store, assistant, settings.prompt_version)
    driver = ConversationDriver(resolver, assistant, history_limit=settings.message_history_limit)
    return Relay(
        gate=MessageGate(settings.bot_username),
        driver=driver,
        telegram=TelegramService(settings.telegram_token),
        store=store,
    )


async def process_update(update: TelegramUpdate, relay: Relay) -> None:
    """Gate, converse and reply for one update. Failures are logged and dropped."""
    update_log = LoggerAdapter(logger, {"update_id": update.update_id})
    try:
        decision = relay.gate.handle(update)
        if decision is None:
            return

        update_log.info(
            "Relaying message",
            context={"session_key": str(decision.session_key), "text_length": len(decision.text)},
        )
        reply = await relay.driver.converse(decision.session_key, decision.text)
        await relay.telegram.send_message(decision.chat_id, reply, reply_to_message_id=decision.message_id)
    except Exception as e:
        update_log.error(f"Update processing failed: {e}", exc_info=True, context={"error_type": type(e).__name__})
