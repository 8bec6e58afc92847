from enum import Enum
from typing import Annotated

from pydantic import BaseModel, Field, StringConstraints

MIN_BEATS = 3
MAX_BEATS = 12
MIN_PANELS = 1
MAX_PANELS = 24
MAX_BUBBLES_PER_PANEL = 2
BEAT_SUMMARY_MAX_CHARS = 120
NARRATION_MAX_CHARS = 80
BUBBLE_TEXT_MAX_CHARS = 80
ALT_MAX_CHARS = 160

NonEmptyStr = Annotated[str, Field(min_length=1)]
# Text that is word-clamped later must not be blank once stripped.
BubbleText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=BUBBLE_TEXT_MAX_CHARS)]
NarrationText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=NARRATION_MAX_CHARS)]


class ProviderKind(str, Enum):
    openai = "openai"
    anthropic = "anthropic"
    mock = "mock"


class Quality(str, Enum):
    fast = "fast"
    balanced = "balanced"
    premium = "premium"


class ComicAudience(str, Enum):
    kids = "kids"
    adults = "adults"


class BeatType(str, Enum):
    setup = "setup"
    inciting = "inciting"
    rising = "rising"
    climax = "climax"
    twist = "twist"
    resolution = "resolution"
    button = "button"


class Photo(BaseModel):
    """Input photo; ``id`` is the join key panels refer to."""

    id: str = Field(min_length=1)
    url: str
    caption: str | None = None

    model_config = {"frozen": True}


class Beat(BaseModel):
    index: int = Field(ge=0)
    type: BeatType
    summary: str = Field(min_length=1, max_length=BEAT_SUMMARY_MAX_CHARS)
    callouts: list[NonEmptyStr] | None = None
    image_refs: list[Annotated[int, Field(ge=0)]] | None = Field(default=None, alias="imageRefs")

    model_config = {"populate_by_name": True}


class Bubble(BaseModel):
    speaker: NonEmptyStr | None = None
    text: BubbleText
    aside: bool | None = None


class Panel(BaseModel):
    index: int = Field(ge=0)
    photo_id: NonEmptyStr | None = Field(default=None, alias="photoId")
    narration: NarrationText | None = None
    bubbles: list[Bubble] | None = Field(default=None, max_length=MAX_BUBBLES_PER_PANEL)
    sfx: list[NonEmptyStr] | None = None
    alt: str | None = Field(default=None, min_length=1, max_length=ALT_MAX_CHARS)

    model_config = {"populate_by_name": True}


BeatList = Annotated[list[Beat], Field(min_length=MIN_BEATS, max_length=MAX_BEATS)]
PanelList = Annotated[list[Panel], Field(min_length=MIN_PANELS, max_length=MAX_PANELS)]


class TitleNarrative(BaseModel):
    title: str
    narrative: str = ""
