"""
Recover and validate structured JSON from free-form model responses.

Extraction is tolerant (fences, surrounding prose, trailing commas);
validation is strict and raises typed errors. Neither retries.
"""

import json
import logging
import re
from typing import Any

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from comicgen.core.exceptions import ExtractionError, SchemaValidationError
from comicgen.core.metrics import increment_json_parse_failure
from comicgen.schemas import (
    MAX_BEATS,
    MAX_BUBBLES_PER_PANEL,
    MAX_PANELS,
    Beat,
    BeatList,
    Panel,
    PanelList,
)

logger = logging.getLogger(__name__)

_PREVIEW_CHARS = 200
_LEADING_FENCE = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_TRAILING_FENCE = re.compile(r"\s*```$")
_TRAILING_COMMA = re.compile(r",\s*([}\]])")

_BEATS_ADAPTER: TypeAdapter[list[Beat]] = TypeAdapter(BeatList)
_PANELS_ADAPTER: TypeAdapter[list[Panel]] = TypeAdapter(PanelList)


def _strip_markdown_fences(text: str) -> str:
    """Remove a leading ```json / ``` marker and a trailing ``` marker."""
    cleaned = _LEADING_FENCE.sub("", text.strip())
    cleaned = _TRAILING_FENCE.sub("", cleaned)
    return cleaned.strip()


def _slice_outer_json(text: str) -> str:
    """Slice from the earliest ``{``/``[`` to the latest ``}``/``]``."""
    starts = [idx for idx in (text.find("{"), text.find("[")) if idx != -1]
    if not starts:
        return text
    first = min(starts)
    last = max(text.rfind("}"), text.rfind("]"))
    if last <= first:
        return text
    return text[first : last + 1]


def extract_json(raw: str | None) -> Any:
    """Parse the JSON value embedded in ``raw``.

    Raises:
        ExtractionError: If no tier yields valid JSON.
    """
    text = _strip_markdown_fences(raw or "")
    candidate = _slice_outer_json(text)

    try:
        return json.loads(candidate)
    except (json.JSONDecodeError, RecursionError):
        increment_json_parse_failure("sliced")

    cleaned = _TRAILING_COMMA.sub(r"\1", candidate)
    if cleaned != candidate:
        try:
            return json.loads(cleaned)
        except (json.JSONDecodeError, RecursionError):
            increment_json_parse_failure("cleaned")

    preview = (raw or "")[:_PREVIEW_CHARS]
    logger.warning("json extraction failed preview=%r", preview)
    raise ExtractionError(f"invalid JSON in model response: {preview!r}", preview=preview)


def unwrap_list(payload: Any, key: str) -> Any:
    """Return ``payload[key]`` for the ``{"beats": [...]}`` envelope, or a bare list as-is."""
    if isinstance(payload, dict):
        return payload.get(key)
    if isinstance(payload, list):
        return payload
    return None


def normalize_bubbles(panels: Any) -> Any:
    """Convert bare-string bubbles into ``{"text": ...}`` objects.

    Runs before validation so the validated model has a single bubble shape.
    Input that is not a list of panel mappings is returned untouched and left
    for validation to reject.
    """
    if not isinstance(panels, list):
        return panels
    normalized = []
    for panel in panels:
        if isinstance(panel, dict) and isinstance(panel.get("bubbles"), list):
            bubbles = [{"text": b} if isinstance(b, str) else b for b in panel["bubbles"]]
            panel = {**panel, "bubbles": bubbles}
        normalized.append(panel)
    return normalized


def _validation_failed(kind: str, exc: PydanticValidationError) -> SchemaValidationError:
    errors = exc.errors(include_url=False, include_context=False)
    logger.warning("%s validation failed errors=%d first=%s", kind, len(errors), errors[:1])
    return SchemaValidationError(f"{kind} failed validation with {len(errors)} error(s)", errors=errors)


def validate_beats(data: Any) -> list[Beat]:
    try:
        beats = _BEATS_ADAPTER.validate_python(data)
    except PydanticValidationError as exc:
        raise _validation_failed("beats", exc) from exc
    return beats[:MAX_BEATS]


def validate_panels(data: Any) -> list[Panel]:
    try:
        panels = _PANELS_ADAPTER.validate_python(normalize_bubbles(data))
    except PydanticValidationError as exc:
        raise _validation_failed("panels", exc) from exc
    return [
        panel.model_copy(update={"bubbles": panel.bubbles[:MAX_BUBBLES_PER_PANEL]})
        if panel.bubbles is not None
        else panel
        for panel in panels[:MAX_PANELS]
    ]


def parse_beats(raw: str | None) -> list[Beat]:
    """Extract and validate a beat outline from model text."""
    return validate_beats(unwrap_list(extract_json(raw), "beats"))


def parse_panels(raw: str | None) -> list[Panel]:
    """Extract and validate a panel script from model text."""
    return validate_panels(unwrap_list(extract_json(raw), "panels"))
