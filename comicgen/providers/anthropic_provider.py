from __future__ import annotations

from typing import Any

import anthropic
from anthropic import AsyncAnthropic

from comicgen.providers.base import LiveProvider
from comicgen.schemas import ProviderKind


def make_user_content(text: str, image_urls: list[str]) -> list[dict[str, Any]]:
    # URL image sources carry no media_type.
    content: list[dict[str, Any]] = [{"type": "text", "text": text}]
    for url in image_urls:
        content.append({"type": "image", "source": {"type": "url", "url": url}})
    return content


class AnthropicProvider(LiveProvider):
    kind = ProviderKind.anthropic
    api_key_env = "ANTHROPIC_API_KEY"
    sdk_error = anthropic.AnthropicError
    timeout_errors = (anthropic.APITimeoutError,)
    connection_errors = (anthropic.APIConnectionError,)

    def _build_client(self) -> AsyncAnthropic:
        return AsyncAnthropic(
            api_key=self._settings.api_key,
            timeout=self._settings.timeout_seconds,
            max_retries=self._settings.max_retries,
        )

    async def _complete(self, *, model: str, system: str, text: str, image_urls: list[str]) -> str:
        resp = await self._client.messages.create(
            model=model,
            system=system,
            messages=[{"role": "user", "content": make_user_content(text, image_urls)}],
            temperature=self._config.temperature,
            max_tokens=self._config.max_tokens,
        )
        texts = [block.text for block in resp.content or [] if getattr(block, "type", None) == "text"]
        return "\n".join(texts).strip()
