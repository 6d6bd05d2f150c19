from functools import lru_cache
from typing import Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings

from threadbridge.errors import ConfigurationMissing
from threadbridge.logging_config import get_logger

logger = get_logger("config")


class Settings(BaseSettings):
    telegram_token: str
    openai_api_key: str
    assistant_id: str
    bot_secret: str
    external_url: str = Field(validation_alias="RENDER_EXTERNAL_URL")

    bot_username: str = "SiharaPrakBot"
    port: int = 3000

    # Bump when the assistant instructions change; older threads are dropped on next use.
    prompt_version: str = "1.2"

    threads_file: str = "./sihara_threads.json"
    session_store_url: Optional[str] = None
    reset_sessions_on_startup: bool = True

    openai_base_url: str = "https://api.openai.com/v1"
    openai_timeout_seconds: float = 60.0
    run_poll_interval_seconds: float = 1.0
    run_poll_max_attempts: int = 120
    message_history_limit: int = 5

    keepalive_enabled: bool = True
    keepalive_interval_seconds: float = 180.0
    register_webhook_on_startup: bool = True

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"
        populate_by_name = True

    @property
    def mention(self) -> str:
        return f"@{self.bot_username}"

    @property
    def webhook_path(self) -> str:
        return f"/webhook/{self.bot_secret}"

    @property
    def webhook_url(self) -> str:
        return f"{self.external_url.rstrip('/')}{self.webhook_path}"


def _missing_fields(exc: ValidationError) -> list[str]:
    missing = []
    for error in exc.errors():
        if error.get("type") != "missing":
            continue
        name = str(error["loc"][0]) if error.get("loc") else "unknown"
        missing.append(name.upper())
    return missing


def load_settings(**overrides) -> Settings:
    """Build settings from the environment, raising ConfigurationMissing on gaps."""
    try:
        return Settings(**overrides)
    except ValidationError as e:
        missing = _missing_fields(e)
        if not missing:
            raise
        logger.error(
            "Missing required environment variables",
            extra={"context": {"missing": missing}},
        )
        raise ConfigurationMissing(missing) from e


@lru_cache
def get_settings() -> Settings:
    return load_settings()
