"""
Provider capability interface and the shared flow for live model backends.

Live backends differ only in how a (system, text, images) request is sent
and how SDK errors map onto the error taxonomy. Prompt building, JSON
extraction, validation and the panel repair passes live here.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Sequence

from comicgen.core.exceptions import (
    BackendAuthError,
    BackendError,
    BackendRateLimitError,
    BackendTimeoutError,
    BackendUnavailableError,
    ProviderNotConfiguredError,
)
from comicgen.core.metrics import track_backend_call
from comicgen.core.request_context import log_context
from comicgen.core.settings import ProviderSettings
from comicgen.prompts.loader import render_prompt
from comicgen.schemas import (
    BEAT_SUMMARY_MAX_CHARS,
    Beat,
    ComicAudience,
    Panel,
    Photo,
    ProviderKind,
    Quality,
    TitleNarrative,
)
from comicgen.services.caps import enforce_comic_caps, get_preset
from comicgen.services.coverage import assign_fallback_photos, enforce_photo_coverage
from comicgen.services.extraction import parse_beats, parse_panels
from comicgen.services.model_resolution import (
    coerce_quality,
    get_provider_config,
    load_provider_settings,
    resolve_model,
)
from comicgen.services.text import parse_title_narrative

logger = logging.getLogger(__name__)

DEFAULT_AUDIENCE = "kids-10-12"
DEFAULT_TONE = "wholesome"
DEFAULT_STYLE = "funny"
DEFAULT_WORD_COUNT = 90

_BEATS_JSON_MAX_CHARS = 8000


class StoryProvider(ABC):
    """One text backend able to outline, script and blurb a photo comic."""

    @abstractmethod
    def provider_name(self) -> str: ...

    @abstractmethod
    def model_name(self) -> str: ...

    @abstractmethod
    async def gen_beats(
        self,
        photos: Sequence[Photo],
        audience: str = DEFAULT_AUDIENCE,
        tone: str = DEFAULT_TONE,
        style: str = DEFAULT_STYLE,
        quality: Quality | str | None = None,
    ) -> list[Beat]: ...

    @abstractmethod
    async def gen_panels(
        self,
        beats: Sequence[Beat],
        photos: Sequence[Photo],
        panel_count: int,
        quality: Quality | str | None = None,
        comic_audience: ComicAudience | str = ComicAudience.kids,
    ) -> list[Panel]: ...

    @abstractmethod
    async def gen_narrative(
        self,
        beats: Sequence[Beat],
        audience: str = DEFAULT_AUDIENCE,
        tone: str = DEFAULT_TONE,
        style: str = DEFAULT_STYLE,
        word_count: int = DEFAULT_WORD_COUNT,
        quality: Quality | str | None = None,
    ) -> TitleNarrative: ...


def beats_to_json(beats: Sequence[Beat]) -> str:
    payload = [beat.model_dump(mode="json", by_alias=True, exclude_none=True) for beat in beats]
    return json.dumps(payload)[:_BEATS_JSON_MAX_CHARS]


def photos_to_context(photos: Sequence[Photo]) -> list[dict[str, Any]]:
    return [photo.model_dump() for photo in photos]


class LiveProvider(StoryProvider):
    """Shared beats/panels/narrative flow for network backends.

    Subclasses set ``kind`` and ``api_key_env`` and implement ``_build_client``
    and ``_complete``. Settings are read when the provider is constructed, so
    each generation request sees the current environment.
    """

    kind: ProviderKind
    api_key_env: str
    # Exception types from the SDK, filled in by subclasses.
    sdk_error: type[Exception] = Exception
    timeout_errors: tuple[type[Exception], ...] = ()
    connection_errors: tuple[type[Exception], ...] = ()

    def __init__(
        self,
        quality: Quality | str | None = None,
        settings: ProviderSettings | None = None,
        client: Any | None = None,
    ) -> None:
        self._settings = settings or load_provider_settings(self.kind)
        if client is None and not self._settings.api_key:
            raise ProviderNotConfiguredError(self.kind.value, self.api_key_env)
        self._quality = coerce_quality(quality)
        self._config = get_provider_config(self.kind, self._quality, settings=self._settings)
        self._client = client if client is not None else self._build_client()

    def provider_name(self) -> str:
        return self.kind.value

    def model_name(self) -> str:
        return self._config.model

    def _model_for(self, quality: Quality | str | None) -> str:
        if quality is None:
            return self._config.model
        return resolve_model(self.kind, quality, settings=self._settings)

    @abstractmethod
    def _build_client(self) -> Any: ...

    @abstractmethod
    async def _complete(self, *, model: str, system: str, text: str, image_urls: list[str]) -> str:
        """Send one request and return the concatenated response text."""

    async def gen_beats(
        self,
        photos: Sequence[Photo],
        audience: str = DEFAULT_AUDIENCE,
        tone: str = DEFAULT_TONE,
        style: str = DEFAULT_STYLE,
        quality: Quality | str | None = None,
    ) -> list[Beat]:
        vision = self._config.vision_beats
        text = render_prompt(
            "prompt_beats",
            audience=audience,
            tone=tone,
            style=style,
            beat_summary_max=BEAT_SUMMARY_MAX_CHARS,
            photos=photos_to_context(photos),
            vision=vision,
        )
        raw = await self._call(
            "beats",
            model=self._model_for(quality),
            system=render_prompt("system_beats"),
            text=text,
            image_urls=[photo.url for photo in photos] if vision else [],
        )
        return parse_beats(raw or "{}")

    async def gen_panels(
        self,
        beats: Sequence[Beat],
        photos: Sequence[Photo],
        panel_count: int,
        quality: Quality | str | None = None,
        comic_audience: ComicAudience | str = ComicAudience.kids,
    ) -> list[Panel]:
        photos = list(photos)
        preset = get_preset(comic_audience)
        text = render_prompt(
            "prompt_panels",
            panel_count=panel_count,
            bubbles_per_panel=preset.bubbles_per_panel,
            narration_words=preset.narration_words,
            bubble_words=preset.bubble_words,
            photos=photos_to_context(photos),
            beats_json=beats_to_json(beats),
        )
        raw = await self._call(
            "panels",
            model=self._model_for(quality),
            system=render_prompt("system_panels"),
            text=text,
            image_urls=[photo.url for photo in photos] if self._config.vision_panels else [],
        )
        panels = parse_panels(raw or "{}")
        panels = enforce_photo_coverage(panels, photos)
        panels = enforce_comic_caps(panels, preset)
        return assign_fallback_photos(panels, photos)

    async def gen_narrative(
        self,
        beats: Sequence[Beat],
        audience: str = DEFAULT_AUDIENCE,
        tone: str = DEFAULT_TONE,
        style: str = DEFAULT_STYLE,
        word_count: int = DEFAULT_WORD_COUNT,
        quality: Quality | str | None = None,
    ) -> TitleNarrative:
        text = render_prompt(
            "prompt_narrative",
            word_count=word_count,
            audience=audience,
            tone=tone,
            style=style,
            beats_json=beats_to_json(beats),
        )
        raw = await self._call(
            "narrative",
            model=self._model_for(quality),
            system=render_prompt("system_narrative"),
            text=text,
            image_urls=[],
        )
        return parse_title_narrative(raw)

    async def _call(self, operation: str, *, model: str, system: str, text: str, image_urls: list[str]) -> str:
        with log_context(provider=self.kind.value):
            logger.info(
                "backend.%s start model=%s images=%d prompt_chars=%d",
                operation,
                model,
                len(image_urls),
                len(text),
            )
            try:
                with track_backend_call(self.kind.value, operation):
                    raw = await self._complete(model=model, system=system, text=text, image_urls=image_urls)
            except self.sdk_error as exc:
                error = self._classify_error(exc, model)
                logger.error(
                    "backend.%s failed model=%s type=%s error=%r",
                    operation,
                    model,
                    type(error).__name__,
                    exc,
                )
                raise error from exc
            logger.info("backend.%s done model=%s response_chars=%d", operation, model, len(raw or ""))
            return raw

    def _classify_error(self, exc: Exception, model: str) -> BackendError:
        """Map an SDK exception onto the backend error taxonomy."""
        provider = self.kind.value
        message = f"{provider} call failed: {exc}"
        if isinstance(exc, self.timeout_errors):
            return BackendTimeoutError(message, provider=provider, model=model)
        if isinstance(exc, self.connection_errors):
            return BackendUnavailableError(message, provider=provider, model=model)

        status = getattr(exc, "status_code", None)
        if status == 429:
            return BackendRateLimitError(message, provider=provider, model=model)
        if status in (401, 403):
            return BackendAuthError(message, provider=provider, model=model)
        if status in (408, 504):
            return BackendTimeoutError(message, provider=provider, model=model)
        if isinstance(status, int) and status >= 500:
            return BackendUnavailableError(message, provider=provider, model=model)
        return BackendError(message, provider=provider, model=model)
