from __future__ import annotations

from typing import Any

import openai
from openai import AsyncOpenAI

from comicgen.providers.base import LiveProvider
from comicgen.schemas import ProviderKind


def make_user_content(text: str, image_urls: list[str]) -> list[dict[str, Any]]:
    content: list[dict[str, Any]] = [{"type": "text", "text": text}]
    for url in image_urls:
        content.append({"type": "image_url", "image_url": {"url": url}})
    return content


class OpenAIProvider(LiveProvider):
    kind = ProviderKind.openai
    api_key_env = "OPENAI_API_KEY"
    sdk_error = openai.OpenAIError
    timeout_errors = (openai.APITimeoutError,)
    connection_errors = (openai.APIConnectionError,)

    def _build_client(self) -> AsyncOpenAI:
        return AsyncOpenAI(
            api_key=self._settings.api_key,
            timeout=self._settings.timeout_seconds,
            max_retries=self._settings.max_retries,
        )

    async def _complete(self, *, model: str, system: str, text: str, image_urls: list[str]) -> str:
        resp = await self._client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": make_user_content(text, image_urls)},
            ],
            temperature=self._config.temperature,
            max_tokens=self._config.max_tokens,
        )
        if not resp.choices:
            return ""
        return resp.choices[0].message.content or ""
