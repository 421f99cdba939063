"""
Application configuration.
Loaded from environment variables (and `.env`) with Pydantic Settings.
"""
from functools import lru_cache
from typing import List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .validation import ValidationMode

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful assistant. Keep all your responses on topic and professional. "
    "Do not deviate from the question being asked. Return your responses in markdown format."
)


class Settings(BaseSettings):
    """Runtime configuration for the chat gateway."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    app_name: str = "Chat Gateway"

    # Provider
    provider: Literal["openrouter", "mock"] = Field(default="openrouter", alias="CHAT_PROVIDER")
    openrouter_api_key: str = Field(default="", alias="OPEN_ROUTER_API_KEY")
    openrouter_base_url: str = Field(default="https://openrouter.ai/api", alias="OPEN_ROUTER_BASE_URL")
    openrouter_referer: str = Field(default="", alias="OPEN_ROUTER_REFERER")
    openrouter_title: str = Field(default="", alias="OPEN_ROUTER_TITLE")
    model: str = Field(default="deepseek/deepseek-chat-v3.1:free", alias="CHAT_MODEL")

    # Request and stream behaviour
    validation_mode: ValidationMode = Field(default=ValidationMode.STRICT, alias="VALIDATION_MODE")
    framing: Literal["sse", "raw"] = Field(default="sse", alias="STREAM_FRAMING")
    system_prompt: str = Field(default=DEFAULT_SYSTEM_PROMPT, alias="SYSTEM_PROMPT")
    smoothing: Literal["word", "line", "none"] = Field(default="word", alias="STREAM_SMOOTHING")
    smoothing_delay_ms: int = Field(default=50, ge=0, alias="STREAM_SMOOTHING_DELAY_MS")

    # HTTP
    cors_origins: List[str] = Field(default=["*"], alias="CORS_ORIGINS")
    app_host: str = Field(default="0.0.0.0", alias="APP_HOST")
    app_port: int = Field(default=8000, alias="APP_PORT")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @property
    def smoothing_delay(self) -> float:
        return self.smoothing_delay_ms / 1000


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
