"""Deterministic offline provider: no network, no credentials, same output for same input."""

from __future__ import annotations

from typing import Sequence

from comicgen.providers.base import (
    DEFAULT_AUDIENCE,
    DEFAULT_STYLE,
    DEFAULT_TONE,
    DEFAULT_WORD_COUNT,
    StoryProvider,
)
from comicgen.schemas import (
    MAX_PANELS,
    MIN_PANELS,
    Beat,
    BeatType,
    Bubble,
    ComicAudience,
    Panel,
    Photo,
    Quality,
    TitleNarrative,
)
from comicgen.services.caps import enforce_comic_caps, get_preset
from comicgen.services.model_resolution import MOCK_MODEL

MIN_MOCK_BEATS = 5
MAX_MOCK_BEATS = 7

_BEAT_KINDS = [
    BeatType.setup,
    BeatType.inciting,
    BeatType.rising,
    BeatType.climax,
    BeatType.resolution,
    BeatType.button,
]
_OPENING_SUMMARY = "Our heroes discover the camera has a knack for catching chaos."
_MIDDLE_SUMMARY = "Escalating antics involve snacks, timing, and suspicious coincidences."
_CLOSING_SUMMARY = "They agree the sunglasses deserve assistant-director credit."
_CALLOUTS = [["snack", "spin"], ["sunglasses", "gasp"]]

_TITLE_ADJECTIVES = ["Chaotic", "Curious", "Unplanned", "Legendary", "Sneaky", "Glorious"]
_TITLE_NOUNS = ["Camera", "Snack Heist", "Sunglasses", "Detour", "Photo Op"]


def make_mock_title(photo_count: int, beat_count: int) -> str:
    adjective = _TITLE_ADJECTIVES[beat_count % len(_TITLE_ADJECTIVES)]
    noun = _TITLE_NOUNS[(beat_count + photo_count) % len(_TITLE_NOUNS)]
    return f"The {adjective} {noun}"


class MockProvider(StoryProvider):
    def provider_name(self) -> str:
        return "mock"

    def model_name(self) -> str:
        return MOCK_MODEL

    async def gen_beats(
        self,
        photos: Sequence[Photo],
        audience: str = DEFAULT_AUDIENCE,
        tone: str = DEFAULT_TONE,
        style: str = DEFAULT_STYLE,
        quality: Quality | str | None = None,
    ) -> list[Beat]:
        count = min(max(MIN_MOCK_BEATS, len(photos)), MAX_MOCK_BEATS)
        beats = []
        for i in range(count):
            if i == 0:
                summary = _OPENING_SUMMARY
            elif i == count - 1:
                summary = _CLOSING_SUMMARY
            else:
                summary = _MIDDLE_SUMMARY
            beats.append(
                Beat(
                    index=i,
                    type=_BEAT_KINDS[min(i, len(_BEAT_KINDS) - 1)],
                    summary=summary,
                    callouts=list(_CALLOUTS[i % 2]),
                    image_refs=[i % max(1, len(photos))],
                )
            )
        return beats

    async def gen_panels(
        self,
        beats: Sequence[Beat],
        photos: Sequence[Photo],
        panel_count: int,
        quality: Quality | str | None = None,
        comic_audience: ComicAudience | str = ComicAudience.kids,
    ) -> list[Panel]:
        panels = []
        for i in range(min(max(panel_count, MIN_PANELS), MAX_PANELS)):
            beat = beats[i % len(beats)] if beats else None
            photo = photos[i % len(photos)] if photos else None
            alt = f"Panel {i + 1} reflecting beat {beat.type.value}" if beat else f"Panel {i + 1}"
            if i % 2 == 0:
                panel = Panel(
                    index=i,
                    photo_id=photo.id if photo else None,
                    narration="Warm-up turns into a perfectly unplanned routine.",
                    bubbles=[Bubble(speaker="Puppy", text="I do strategy AND snacks.")],
                    sfx=["WHOOSH"],
                    alt=alt,
                )
            else:
                panel = Panel(
                    index=i,
                    photo_id=photo.id if photo else None,
                    narration="A ricochet shot convinces everyone fate loves a good snack.",
                    bubbles=[Bubble(text="Left… other left!"), Bubble(speaker="Zoey", text="Totally planned.")],
                    alt=alt,
                )
            panels.append(panel)
        return enforce_comic_caps(panels, get_preset(comic_audience))

    async def gen_narrative(
        self,
        beats: Sequence[Beat],
        audience: str = DEFAULT_AUDIENCE,
        tone: str = DEFAULT_TONE,
        style: str = "quirky, kid-friendly",
        word_count: int = DEFAULT_WORD_COUNT,
        quality: Quality | str | None = None,
    ) -> TitleNarrative:
        arc = " → ".join(beat.type.value for beat in beats)
        photo_count = len({ref for beat in beats for ref in beat.image_refs or []})
        narrative = " ".join(
            [
                f"In a {style} romp, a crew and one very confident puppy discover their camera loves drama ({arc}).",
                "Warm-ups become stunts, stunts become legends, and every snack seems to trigger a plot twist.",
                "By the time the sunglasses demand a producer credit, everyone agrees chaos has impeccable timing.",
            ]
        )
        return TitleNarrative(title=make_mock_title(photo_count, len(beats)), narrative=narrative)
