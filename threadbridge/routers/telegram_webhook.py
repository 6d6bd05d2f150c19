import json
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from pydantic import ValidationError

from threadbridge.config import Settings, get_settings
from threadbridge.logging_config import get_logger
from threadbridge.schemas.telegram import TelegramUpdate, TelegramWebhookResponse
from threadbridge.services.relay import Relay, process_update

logger = get_logger("telegram_webhook")

router = APIRouter()


def get_relay(request: Request) -> Relay:
    relay = getattr(request.app.state, "relay", None)
    if relay is None:
        raise HTTPException(status_code=503, detail="Relay not initialized")
    return relay


async def parse_telegram_update(request: Request) -> Optional[dict]:
    """
    Parse Telegram update with tolerant decoding to avoid utf-8 crashes.
    Returns dict or None.
    """
    try:
        return await request.json()
    except Exception as e:
        logger.warning(f"Standard request.json() failed: {e}, fallback decoding")

    raw = await request.body()
    for enc in ("utf-8", "latin-1"):
        try:
            decoded = raw.decode(enc, errors="replace")
            return json.loads(decoded)
        except Exception:
            continue

    logger.error("Failed to decode Telegram webhook payload after fallbacks")
    return None


@router.post("/webhook/{secret}", response_model=TelegramWebhookResponse)
async def handle_telegram_webhook(
    secret: str,
    request: Request,
    background_tasks: BackgroundTasks,
    settings: Settings = Depends(get_settings),
    relay: Relay = Depends(get_relay),
):
    """
    Acknowledge a Telegram update immediately and relay it in the background.
    The response never reflects the assistant outcome.
    """
    if secret != settings.bot_secret:
        raise HTTPException(status_code=404, detail="Not Found")

    body = await parse_telegram_update(request)
    if not isinstance(body, dict):
        return TelegramWebhookResponse()

    try:
        update = TelegramUpdate(**body)
    except ValidationError as e:
        logger.warning(f"Ignoring malformed Telegram update: {e}")
        return TelegramWebhookResponse()

    background_tasks.add_task(process_update, update, relay)
    return TelegramWebhookResponse()
