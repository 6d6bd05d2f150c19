from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from threadbridge.config import Settings, get_settings

router = APIRouter()


@router.get("/", response_class=PlainTextResponse)
async def health(settings: Settings = Depends(get_settings)):
    return f"{settings.bot_username} running | prompt {settings.prompt_version}"
