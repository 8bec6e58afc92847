import re
from dataclasses import dataclass

from comicgen.schemas import ComicAudience, Panel

_TRAILING_PUNCTUATION = re.compile(r"[.,;:!?-]*$")
ELLIPSIS = "…"


@dataclass(frozen=True)
class ComicPreset:
    """Per-audience word budgets applied after validation."""

    narration_words: int
    bubble_words: int
    bubbles_per_panel: int
    panel_count: int | None = None


COMIC_PRESETS: dict[ComicAudience, ComicPreset] = {
    ComicAudience.kids: ComicPreset(panel_count=6, narration_words=10, bubble_words=8, bubbles_per_panel=2),
    ComicAudience.adults: ComicPreset(panel_count=6, narration_words=12, bubble_words=10, bubbles_per_panel=2),
}


def get_preset(audience: ComicAudience | str | None) -> ComicPreset:
    """Look up a preset by audience, defaulting to kids for unknown names."""
    try:
        return COMIC_PRESETS[ComicAudience(audience)]
    except ValueError:
        return COMIC_PRESETS[ComicAudience.kids]


def clamp_words(text: str | None = "", max_words: int = 10) -> str:
    """Trim ``text`` to ``max_words`` words, ending in an ellipsis when cut."""
    stripped = (text or "").strip()
    words = stripped.split()
    if len(words) <= max_words:
        return stripped
    clipped = " ".join(words[:max_words])
    return _TRAILING_PUNCTUATION.sub("", clipped) + ELLIPSIS


def enforce_comic_caps(panels: list[Panel], preset: ComicPreset | None = None) -> list[Panel]:
    """Clamp narration and bubble text to the preset budgets and cap bubble count."""
    preset = preset or COMIC_PRESETS[ComicAudience.kids]
    capped: list[Panel] = []
    for panel in panels:
        update: dict = {}
        if panel.narration:
            update["narration"] = clamp_words(panel.narration, preset.narration_words)
        if panel.bubbles is not None:
            update["bubbles"] = [
                bubble.model_copy(update={"text": clamp_words(bubble.text, preset.bubble_words)})
                for bubble in panel.bubbles[: preset.bubbles_per_panel]
            ]
        capped.append(panel.model_copy(update=update))
    return capped
