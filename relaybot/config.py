from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings

DEFAULT_COMPLETION_URL = "https://paxsenix-ai.onrender.com/v1/chat/completions"
DEFAULT_COMPLETION_MODEL = "meta-llama/Meta-Llama-3-70B-Instruct"
DEFAULT_IMAGE_SERVICE_URL = "https://www.craiyon.com/mini"


class Settings(BaseSettings):
    telegram_bot_token: str = ""
    completion_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("completion_api_key", "apikey"),
    )

    completion_url: str = DEFAULT_COMPLETION_URL
    completion_model: str = DEFAULT_COMPLETION_MODEL
    completion_max_tokens: int = 300
    completion_temperature: float = 0.9
    completion_timeout_seconds: float = 60.0

    image_service_url: str = DEFAULT_IMAGE_SERVICE_URL
    image_timeout_seconds: float = 60.0

    redis_url: str = "redis://localhost:6379/0"
    redis_key_prefix: str = "relaybot"

    transcript_max_messages: Optional[int] = Field(default=None, ge=2)
    serialize_exchanges: bool = False
    webhook_secret: Optional[str] = None

    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    class Config:
        env_file = ".env"
        extra = "ignore"
