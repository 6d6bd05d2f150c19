import asyncio

import httpx

from threadbridge.logging_config import get_logger

logger = get_logger("keepalive")


async def ping(url: str, timeout: float = 10.0) -> bool:
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.get(url)
            return response.status_code < 500
    except Exception as e:
        logger.debug(f"Keep-alive ping failed: {e}")
        return False


async def keepalive_loop(url: str, interval_seconds: float) -> None:
    """Ping our own public URL so the hosting platform does not idle the service."""
    interval_seconds = max(interval_seconds, 1.0)
    while True:
        try:
            await asyncio.sleep(interval_seconds)
            await ping(url)
        except asyncio.CancelledError:
            break
