from typing import Literal, Optional

from pydantic import AnyHttpUrl, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_CHAT_URL = "https://chat.stream-io-api.com"
DEFAULT_TIMEOUT_SECONDS = 6.0


class StreamSettings(BaseSettings):

    # ---- credentials ----
    key: Optional[str] = None            # STREAM_KEY
    secret: Optional[SecretStr] = None   # STREAM_SECRET

    # ---- transport ----
    chat_url: AnyHttpUrl = DEFAULT_CHAT_URL  # STREAM_CHAT_URL
    chat_timeout: float = DEFAULT_TIMEOUT_SECONDS  # STREAM_CHAT_TIMEOUT
    verify_ssl: bool = True
    max_retries: int = 3  # only applied to idempotent methods

    # ---- app/runtime ----
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="STREAM_",
        extra="ignore",
    )


def get_settings() -> StreamSettings:
    """Parse settings from the environment (and `.env` if present)."""
    return StreamSettings()
