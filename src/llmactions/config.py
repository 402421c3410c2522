"""Configuration settings for llmactions."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

CacheBackend = Literal["file", "sqlite", "memory", "none"]


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or overrides."""

    model_config = SettingsConfigDict(
        env_prefix="", case_sensitive=False, populate_by_name=True
    )

    openai_api_key: str | None = Field(default=None, validation_alias="OPENAI_API_KEY")
    openai_base_url: str = Field(
        default="https://api.openai.com/v1", validation_alias="OPENAI_BASE_URL"
    )
    openai_model: str = Field(default="gpt-4-1106-preview", validation_alias="OPENAI_MODEL")
    openai_timeout_seconds: int = Field(
        default=60, validation_alias="OPENAI_TIMEOUT_SECONDS"
    )
    openai_extra_headers: str | None = Field(
        default=None, validation_alias="OPENAI_EXTRA_HEADERS"
    )
    temperature: float = Field(default=0.0, validation_alias="LLMACTIONS_TEMPERATURE")
    cache_backend: CacheBackend = Field(
        default="file", validation_alias="LLMACTIONS_CACHE_BACKEND"
    )
    cache_dir: str = Field(default=".cache", validation_alias="LLMACTIONS_CACHE_DIR")
    tries: int = Field(default=1, ge=0, validation_alias="LLMACTIONS_TRIES")
    feedback_size_limit: int = Field(
        default=2000, ge=0, validation_alias="LLMACTIONS_FEEDBACK_SIZE_LIMIT"
    )
    log_level: str = Field(default="INFO", validation_alias="LLMACTIONS_LOG_LEVEL")
