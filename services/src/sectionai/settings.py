"""Pydantic settings for the section AI service."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Any, ClassVar, Literal, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

Mode = Literal["offline", "live", "mock"]
VALID_MODES: tuple[Mode, ...] = ("offline", "live", "mock")

LEGACY_MODE_ENV = "SECTIONAI_LLM_MODE"
MODE_ENV = "SECTIONAI_MODE"


class Settings(BaseSettings):
    """Environment-driven configuration; each field accepts a prefixed and a bare name."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    mode: Mode = Field(
        default="mock",
        validation_alias=AliasChoices(MODE_ENV, LEGACY_MODE_ENV),
    )
    openai_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("SECTIONAI_OPENAI_API_KEY", "OPENAI_API_KEY"),
    )
    llm_base_url: str = Field(
        default="https://api.openai.com/v1",
        validation_alias=AliasChoices("SECTIONAI_LLM_BASE_URL", "LLM_BASE_URL"),
    )
    llm_model: str = Field(
        default="gpt-4o-mini",
        validation_alias=AliasChoices("SECTIONAI_LLM_MODEL", "LLM_MODEL"),
    )
    llm_temperature: float = Field(
        default=0.3,
        ge=0.0,
        le=2.0,
        validation_alias=AliasChoices("SECTIONAI_LLM_TEMPERATURE", "LLM_TEMPERATURE"),
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0.0,
        validation_alias=AliasChoices("SECTIONAI_REQUEST_TIMEOUT_SECONDS", "REQUEST_TIMEOUT_SECONDS"),
    )
    strict_diff: bool = Field(
        default=False,
        description="Raise instead of truncating when a summary grows a section.",
        validation_alias=AliasChoices("SECTIONAI_STRICT_DIFF", "STRICT_DIFF"),
    )
    log_level: str = Field(
        default="INFO",
        validation_alias=AliasChoices("SECTIONAI_LOG_LEVEL", "LOG_LEVEL"),
    )

    @field_validator("mode", mode="before")
    @classmethod
    def _normalise_mode(cls, value: object) -> Mode | object:
        """Normalise mode strings to recognised literal values."""

        if isinstance(value, str):
            candidate = value.strip().lower()
            if candidate in VALID_MODES:
                return candidate
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_level(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    def model_post_init(self, __context: Any) -> None:
        super().model_post_init(__context)

        if os.getenv(LEGACY_MODE_ENV) and not os.getenv(MODE_ENV):
            logger.warning(
                "Environment variable '%s' is deprecated. Rename it to '%s'.",
                LEGACY_MODE_ENV,
                MODE_ENV,
            )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()


__all__ = ["Mode", "Settings", "get_settings"]
