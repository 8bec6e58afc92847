"""
Map (provider, quality tier) to a concrete model id and read per-provider
generation parameters.

Everything here reads the environment on each call; nothing is cached at
import time, so a process picks up config changes between generations.
"""

from __future__ import annotations

from dataclasses import dataclass

from comicgen.core.settings import AnthropicSettings, OpenAISettings, ProviderSettings
from comicgen.schemas import ProviderKind, Quality

MOCK_MODEL = "mock:v0"

DEFAULT_MODELS: dict[ProviderKind, dict[Quality, str]] = {
    ProviderKind.openai: {
        Quality.fast: "gpt-4o-mini",
        Quality.balanced: "gpt-4.1-mini",
        Quality.premium: "gpt-4o",
    },
    ProviderKind.anthropic: {
        Quality.fast: "claude-3-5-haiku-latest",
        Quality.balanced: "claude-3-5-sonnet-latest",
        Quality.premium: "claude-3-opus-latest",
    },
}


@dataclass(frozen=True)
class ProviderConfig:
    model: str
    temperature: float
    max_tokens: int
    vision_beats: bool
    vision_panels: bool


MOCK_CONFIG = ProviderConfig(
    model=MOCK_MODEL,
    temperature=0.0,
    max_tokens=1000,
    vision_beats=False,
    vision_panels=False,
)


def load_provider_settings(kind: ProviderKind | str) -> ProviderSettings | None:
    """Build fresh env-backed settings for a live provider, or None for mock."""
    kind = ProviderKind(kind)
    if kind is ProviderKind.openai:
        return OpenAISettings()
    if kind is ProviderKind.anthropic:
        return AnthropicSettings()
    return None


def coerce_quality(quality: Quality | str | None) -> Quality:
    if quality is None:
        return Quality.balanced
    try:
        return Quality(quality)
    except ValueError:
        return Quality.balanced


def resolve_model(
    kind: ProviderKind | str,
    quality: Quality | str | None = None,
    settings: ProviderSettings | None = None,
) -> str:
    """Resolve the model id for a provider and quality tier. Never raises.

    Order: per-tier override (``OPENAI_MODEL_FAST`` ...), then for the
    balanced tier the provider-wide ``OPENAI_MODEL`` / ``ANTHROPIC_MODEL``,
    then the hard-coded tier default. The mock provider has a single model.
    """
    try:
        kind = ProviderKind(kind)
    except ValueError:
        return MOCK_MODEL
    if kind is ProviderKind.mock:
        return MOCK_MODEL

    tier = coerce_quality(quality)
    settings = settings or load_provider_settings(kind)
    override = getattr(settings, f"model_{tier.value}", None)
    if override:
        return override
    if tier is Quality.balanced and settings.model:
        return settings.model
    return DEFAULT_MODELS[kind][tier]


def get_provider_config(
    kind: ProviderKind | str,
    quality: Quality | str | None = None,
    settings: ProviderSettings | None = None,
) -> ProviderConfig:
    """Shared generation parameters for a provider, read fresh from the env."""
    kind = ProviderKind(kind)
    if kind is ProviderKind.mock:
        return MOCK_CONFIG
    settings = settings or load_provider_settings(kind)
    return ProviderConfig(
        model=resolve_model(kind, quality, settings=settings),
        temperature=settings.temperature,
        max_tokens=settings.max_tokens,
        vision_beats=settings.vision_beats,
        vision_panels=settings.vision_panels,
    )
