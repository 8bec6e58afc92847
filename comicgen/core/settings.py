import math
from typing import Any

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def parse_bool(value: Any, default: bool) -> bool:
    """Parse an env-style flag, keeping ``default`` for anything unrecognised."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    return default


def parse_number(value: Any, default: float) -> float:
    """Parse an env-style number, keeping ``default`` for non-finite input."""
    if value is None:
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str | None = Field(default=None, validation_alias="LOG_FILE")

    ai_provider: str | None = Field(default=None, validation_alias="AI_PROVIDER")
    story_timeout_seconds: float = Field(default=45.0, validation_alias="STORY_TIMEOUT_SECONDS")

    @field_validator("story_timeout_seconds", mode="before")
    @classmethod
    def _tolerant_timeout(cls, value: Any) -> float:
        return parse_number(value, 45.0)


class ProviderSettings(BaseSettings):
    """Shared shape of the per-backend settings.

    Subclasses only set the env prefix and defaults. Instances are meant to be
    built per provider construction so env changes are always picked up.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        protected_namespaces=(),
    )

    api_key: str | None = None
    model: str | None = None
    model_fast: str | None = None
    model_balanced: str | None = None
    model_premium: str | None = None

    temperature: float = 0.8
    max_tokens: int = 1200
    vision_beats: bool = True
    vision_panels: bool = False

    timeout_seconds: float = 40.0
    max_retries: int = 2

    @field_validator("vision_beats", "vision_panels", mode="before")
    @classmethod
    def _tolerant_bool(cls, value: Any, info: ValidationInfo) -> bool:
        return parse_bool(value, cls.model_fields[info.field_name].default)

    @field_validator("temperature", "max_tokens", "timeout_seconds", "max_retries", mode="before")
    @classmethod
    def _tolerant_number(cls, value: Any, info: ValidationInfo) -> float | int:
        field = cls.model_fields[info.field_name]
        number = parse_number(value, field.default)
        if field.annotation is int:
            return int(number)
        return number


class OpenAISettings(ProviderSettings):
    model_config = SettingsConfigDict(
        env_prefix="OPENAI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        protected_namespaces=(),
    )


class AnthropicSettings(ProviderSettings):
    model_config = SettingsConfigDict(
        env_prefix="ANTHROPIC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        protected_namespaces=(),
    )
