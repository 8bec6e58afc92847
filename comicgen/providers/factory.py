"""
Provider selection.

Explicit requests dispatch over the closed ``ProviderKind`` set. When nothing
is requested, the first live backend with a configured credential wins and
the offline provider is the last resort. All lookups read the environment at
call time.
"""

from __future__ import annotations

import logging

from comicgen.core.exceptions import ConfigurationError
from comicgen.core.settings import AnthropicSettings, AppSettings, OpenAISettings
from comicgen.providers.anthropic_provider import AnthropicProvider
from comicgen.providers.base import StoryProvider
from comicgen.providers.mock_provider import MockProvider
from comicgen.providers.openai_provider import OpenAIProvider
from comicgen.schemas import ProviderKind, Quality

logger = logging.getLogger(__name__)


def _parse_kind(value: ProviderKind | str) -> ProviderKind:
    if isinstance(value, ProviderKind):
        return value
    try:
        return ProviderKind(str(value).strip().lower())
    except ValueError as exc:
        raise ConfigurationError(
            f"Unknown provider '{value}'",
            detail=f"provider must be one of {[k.value for k in ProviderKind]}",
        ) from exc


def _credentials() -> dict[ProviderKind, bool]:
    return {
        ProviderKind.openai: bool(OpenAISettings().api_key),
        ProviderKind.anthropic: bool(AnthropicSettings().api_key),
    }


def resolve_default_provider() -> ProviderKind:
    """Pick openai, then anthropic, by configured API key; otherwise mock."""
    credentials = _credentials()
    for kind in (ProviderKind.openai, ProviderKind.anthropic):
        if credentials[kind]:
            return kind
    return ProviderKind.mock


def resolve_provider_kind(requested: ProviderKind | str | None = None) -> ProviderKind:
    """Resolve an explicit provider name, then ``AI_PROVIDER``, then credentials.

    Raises:
        ConfigurationError: If an explicitly requested name is unknown.
    """
    if requested:
        return _parse_kind(requested)

    configured = AppSettings().ai_provider
    if configured:
        try:
            return _parse_kind(configured)
        except ConfigurationError:
            logger.warning("ignoring unknown AI_PROVIDER=%r", configured)
    return resolve_default_provider()


def get_provider(kind: ProviderKind | str, quality: Quality | str | None = None) -> StoryProvider:
    """Build the provider for ``kind``.

    Raises:
        ConfigurationError: If ``kind`` is unknown.
        ProviderNotConfiguredError: If a live provider has no API key.
    """
    kind = _parse_kind(kind)
    if kind is ProviderKind.openai:
        return OpenAIProvider(quality=quality)
    if kind is ProviderKind.anthropic:
        return AnthropicProvider(quality=quality)
    return MockProvider()


def provider_availability() -> dict[str, bool | str]:
    """Which providers can serve a request right now, and the auto-resolved default."""
    credentials = _credentials()
    return {
        ProviderKind.openai.value: credentials[ProviderKind.openai],
        ProviderKind.anthropic.value: credentials[ProviderKind.anthropic],
        ProviderKind.mock.value: True,
        "default": resolve_default_provider().value,
    }
