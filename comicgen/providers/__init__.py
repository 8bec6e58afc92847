from comicgen.providers.anthropic_provider import AnthropicProvider
from comicgen.providers.base import LiveProvider, StoryProvider
from comicgen.providers.factory import (
    get_provider,
    provider_availability,
    resolve_default_provider,
    resolve_provider_kind,
)
from comicgen.providers.mock_provider import MockProvider
from comicgen.providers.openai_provider import OpenAIProvider

__all__ = [
    "AnthropicProvider",
    "LiveProvider",
    "MockProvider",
    "OpenAIProvider",
    "StoryProvider",
    "get_provider",
    "provider_availability",
    "resolve_default_provider",
    "resolve_provider_kind",
]
