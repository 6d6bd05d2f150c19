from typing import Optional

import httpx

from threadbridge.errors import ReplyDeliveryFailure
from threadbridge.logging_config import get_logger

logger = get_logger("telegram_service")


class TelegramService:
    """Service for talking to the Telegram Bot API."""

    BASE_URL = "https://api.telegram.org/bot{token}"

    def __init__(self, bot_token: str, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.bot_token = bot_token
        self.base_url = self.BASE_URL.format(token=bot_token)
        self.transport = transport

    async def _make_request(self, method: str, data: Optional[dict] = None) -> dict:
        """Make request to Telegram API."""
        url = f"{self.base_url}/{method}"
        try:
            async with httpx.AsyncClient(timeout=30.0, transport=self.transport) as client:
                response = await client.post(url, json=data or {})
                return response.json()
        except Exception as e:
            logger.error(f"Telegram API error: {method}: {e}")
            return {"ok": False, "error": str(e)}

    async def send_message(
        self,
        chat_id: int,
        text: str,
        reply_to_message_id: Optional[int] = None,
    ) -> dict:
        """Send a plain-text message, threaded under reply_to_message_id when given."""
        data = {
            "chat_id": chat_id,
            "text": text,
        }
        if reply_to_message_id:
            data["reply_to_message_id"] = reply_to_message_id

        result = await self._make_request("sendMessage", data)
        if not result.get("ok"):
            raise ReplyDeliveryFailure(
                f"sendMessage failed for chat {chat_id}: {result.get('description') or result.get('error')}"
            )
        return result

    async def set_webhook(self, url: str) -> dict:
        """Point Telegram updates at our webhook URL."""
        result = await self._make_request("setWebhook", {"url": url})
        if result.get("ok"):
            logger.info("Webhook registered", extra={"context": {"description": result.get("description")}})
        else:
            logger.warning(f"Failed to register webhook: {result}")
        return result
