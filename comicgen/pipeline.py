"""
Story generation pipeline: beats -> panels -> narrative.

One call turns an ordered photo set into a validated comic. The three steps
run strictly in sequence as a small LangGraph graph, and the whole chain
shares a single wall-clock budget.
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import contextmanager
from typing import Any, Awaitable, Iterable, TypedDict

from langgraph.graph import END, StateGraph
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from comicgen.core.exceptions import NoPhotosError, PipelineTimeoutError
from comicgen.core.metrics import record_story_generation, track_pipeline_step
from comicgen.core.request_context import (
    log_context,
    new_generation_id,
    reset_generation_id,
    set_generation_id,
)
from comicgen.core.settings import AppSettings
from comicgen.providers.base import StoryProvider
from comicgen.providers.factory import get_provider, resolve_provider_kind
from comicgen.schemas import (
    MAX_PANELS,
    Beat,
    ComicAudience,
    Panel,
    Photo,
    ProviderKind,
    Quality,
    TitleNarrative,
)
from comicgen.services.text import coerce_title_narrative

logger = logging.getLogger(__name__)

MAX_PHOTOS = 12
MIN_DEFAULT_PANELS = 4
MAX_DEFAULT_PANELS = 6
DEFAULT_COMIC_TITLE = "Untitled Comic"


def default_panel_count(photo_count: int) -> int:
    return min(MAX_DEFAULT_PANELS, max(MIN_DEFAULT_PANELS, photo_count))


class StoryOptions(BaseModel):
    """Generation knobs supplied by the caller (camelCase or snake_case keys)."""

    audience: str | None = None
    tone: str | None = None
    style: str | None = None
    comic_audience: ComicAudience = ComicAudience.kids
    provider: ProviderKind | None = None
    quality: Quality = Quality.balanced
    panel_count: int | None = Field(default=None, ge=1, le=MAX_PANELS)
    word_count: int = Field(default=90, ge=1)
    timeout_seconds: float | None = Field(default=None, gt=0)

    model_config = {"alias_generator": to_camel, "populate_by_name": True}

    @property
    def is_kids(self) -> bool:
        return self.comic_audience is ComicAudience.kids

    def resolved_audience(self) -> str:
        return self.audience or ("kids-10-12" if self.is_kids else "adults")

    def resolved_tone(self) -> str:
        return self.tone or ("wholesome" if self.is_kids else "witty")

    def resolved_style(self) -> str:
        return self.style or "funny"


class StoryResult(BaseModel):
    beats: list[Beat]
    panels: list[Panel]
    title: str
    narrative: str
    provider_name: str
    model_name: str
    panel_count: int
    options: StoryOptions

    def generation_settings(self) -> dict[str, Any]:
        """The settings record a caller persists next to the story."""
        return {
            "provider": self.provider_name,
            "model": self.model_name,
            "quality": self.options.quality.value,
            "comicAudience": self.options.comic_audience.value,
            "audience": self.options.audience,
            "tone": self.options.tone,
            "style": self.options.style,
            "panelCount": self.panel_count,
        }

    def to_payload(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "narrative": self.narrative,
            "beats": [beat.model_dump(mode="json", by_alias=True, exclude_none=True) for beat in self.beats],
            "panels": [panel.model_dump(mode="json", by_alias=True, exclude_none=True) for panel in self.panels],
            "provider": self.provider_name,
            "model": self.model_name,
            "settings": self.generation_settings(),
        }


class StoryState(TypedDict, total=False):
    photos: list[Photo]
    options: StoryOptions
    panel_count: int

    beats: list[Beat]
    panels: list[Panel]
    title_narrative: TitleNarrative


@contextmanager
def _run_step(step: str, started_steps: list[str]):
    started_steps.append(step)
    with log_context(step=step), track_pipeline_step(step):
        logger.info("step start")
        yield
        logger.info("step done")


def build_story_graph(provider: StoryProvider, started_steps: list[str]):
    """Compile the linear beats -> panels -> narrative graph for one request."""

    async def _node_beats(state: StoryState) -> dict[str, Any]:
        options = state["options"]
        with _run_step("beats", started_steps):
            beats = await provider.gen_beats(
                state["photos"],
                audience=options.resolved_audience(),
                tone=options.resolved_tone(),
                style=options.resolved_style(),
                quality=options.quality,
            )
        return {"beats": beats}

    async def _node_panels(state: StoryState) -> dict[str, Any]:
        options = state["options"]
        with _run_step("panels", started_steps):
            panels = await provider.gen_panels(
                state["beats"],
                state["photos"],
                state["panel_count"],
                quality=options.quality,
                comic_audience=options.comic_audience,
            )
        return {"panels": panels}

    async def _node_narrative(state: StoryState) -> dict[str, Any]:
        options = state["options"]
        with _run_step("narrative", started_steps):
            result = await provider.gen_narrative(
                state["beats"],
                audience=options.resolved_audience(),
                tone=options.resolved_tone(),
                style=options.resolved_style(),
                word_count=options.word_count,
                quality=options.quality,
            )
        return {"title_narrative": coerce_title_narrative(result, default_title=DEFAULT_COMIC_TITLE)}

    graph = StateGraph(StoryState)

    graph.add_node("beats", _node_beats)
    graph.add_node("panels", _node_panels)
    graph.add_node("narrative", _node_narrative)

    graph.set_entry_point("beats")
    graph.add_edge("beats", "panels")
    graph.add_edge("panels", "narrative")
    graph.add_edge("narrative", END)

    return graph.compile()


def _coerce_photos(photos: Iterable[Photo | dict[str, Any]]) -> list[Photo]:
    coerced = [photo if isinstance(photo, Photo) else Photo.model_validate(photo) for photo in photos]
    return coerced[:MAX_PHOTOS]


async def _run_within(coro: Awaitable[Any], timeout_seconds: float) -> tuple[bool, asyncio.Future]:
    """Run ``coro`` as a task against a deadline.

    Returns ``(False, task)`` after cancelling the task when the deadline
    passes, otherwise ``(True, task)`` with the task done. A ``TimeoutError``
    raised by the work itself stays on the task and is not a missed deadline.
    """
    task = asyncio.ensure_future(coro)
    try:
        done, _ = await asyncio.wait({task}, timeout=timeout_seconds)
    except asyncio.CancelledError:
        task.cancel()
        raise
    if done:
        return True, task
    task.cancel()
    await asyncio.gather(task, return_exceptions=True)
    return False, task


async def generate_story(
    photos: Iterable[Photo | dict[str, Any]],
    options: StoryOptions | None = None,
    provider: StoryProvider | None = None,
) -> StoryResult:
    """Generate beats, panels and a title/blurb for ``photos``.

    Args:
        photos: Ordered photos; only the first 12 are used.
        options: Generation knobs; defaults apply when omitted.
        provider: Pre-built provider. When omitted it is resolved from
            ``options.provider`` or, failing that, from configured credentials.

    Raises:
        NoPhotosError: If ``photos`` is empty.
        PipelineTimeoutError: If the whole chain exceeds its budget.
        ExtractionError, SchemaValidationError, BackendError: From the provider.
    """
    options = options or StoryOptions()
    photo_list = _coerce_photos(photos)
    if not photo_list:
        raise NoPhotosError()

    if provider is None:
        provider = get_provider(resolve_provider_kind(options.provider), quality=options.quality)

    panel_count = options.panel_count or default_panel_count(len(photo_list))
    timeout_seconds = options.timeout_seconds or AppSettings().story_timeout_seconds
    provider_name = provider.provider_name()
    started_steps: list[str] = []

    token = set_generation_id(new_generation_id())
    started = time.perf_counter()
    try:
        with log_context(provider=provider_name):
            logger.info(
                "story.generate start photos=%d panels=%d model=%s quality=%s timeout=%.1fs",
                len(photo_list),
                panel_count,
                provider.model_name(),
                options.quality.value,
                timeout_seconds,
            )
            graph = build_story_graph(provider, started_steps)
            state: StoryState = {
                "photos": photo_list,
                "options": options,
                "panel_count": panel_count,
            }
            finished, task = await _run_within(graph.ainvoke(state), timeout_seconds)
            if not finished:
                step = started_steps[-1] if started_steps else None
                record_story_generation(provider_name, "timeout")
                logger.error("story.generate timeout after %.1fs step=%s", timeout_seconds, step)
                raise PipelineTimeoutError(timeout_seconds, step=step)
            try:
                final = task.result()
            except Exception as exc:
                record_story_generation(provider_name, "error")
                logger.error("story.generate failed type=%s error=%s", type(exc).__name__, exc)
                raise

            record_story_generation(provider_name, "success")
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.info("story.generate done in %.0fms", elapsed_ms)

            title_narrative: TitleNarrative = final["title_narrative"]
            return StoryResult(
                beats=final["beats"],
                panels=final["panels"],
                title=title_narrative.title,
                narrative=title_narrative.narrative,
                provider_name=provider_name,
                model_name=provider.model_name(),
                panel_count=panel_count,
                options=options,
            )
    finally:
        reset_generation_id(token)
