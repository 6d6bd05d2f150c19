import asyncio
import sys

import uvicorn
from fastapi import FastAPI

from threadbridge import __version__
from threadbridge.config import get_settings
from threadbridge.errors import ConfigurationMissing
from threadbridge.logging_config import get_logger, setup_logging
from threadbridge.routers import health, telegram_webhook
from threadbridge.services.keepalive_service import keepalive_loop
from threadbridge.services.relay import build_relay

setup_logging()

logger = get_logger("main")

app = FastAPI(
    title="threadbridge",
    description="Relay between Telegram and an OpenAI Assistant",
    version=__version__,
)

app.include_router(health.router)
app.include_router(telegram_webhook.router)

_keepalive_task: asyncio.Task | None = None


@app.on_event("startup")
async def start_relay() -> None:
    global _keepalive_task
    settings = get_settings()
    setup_logging(settings.log_level)

    app.state.relay = build_relay(settings)

    if settings.register_webhook_on_startup:
        try:
            await app.state.relay.telegram.set_webhook(settings.webhook_url)
        except Exception as e:
            logger.warning(f"Webhook registration failed: {e}")

    if settings.keepalive_enabled and (_keepalive_task is None or _keepalive_task.done()):
        _keepalive_task = asyncio.create_task(
            keepalive_loop(settings.external_url, settings.keepalive_interval_seconds)
        )
        logger.info("Keep-alive started", extra={"context": {"interval": settings.keepalive_interval_seconds}})

    logger.info("Relay started", extra={"context": {"prompt_version": settings.prompt_version}})


@app.on_event("shutdown")
async def stop_relay() -> None:
    global _keepalive_task
    if _keepalive_task is None:
        return
    _keepalive_task.cancel()
    try:
        await _keepalive_task
    except asyncio.CancelledError:
        pass
    _keepalive_task = None


def run() -> None:
    """Console entry point: validate configuration, then serve."""
    try:
        settings = get_settings()
    except ConfigurationMissing as e:
        logger.error(str(e))
        sys.exit(1)

    uvicorn.run(app, host="0.0.0.0", port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
