import re

from comicgen.schemas import TitleNarrative

DEFAULT_TITLE = "Untitled Story"

_BLANK_LINE = re.compile(r"\n\s*\n")
_TITLE_LABEL = re.compile(r"^title:\s*", re.IGNORECASE)


def parse_title_narrative(raw: str | None, default_title: str = DEFAULT_TITLE) -> TitleNarrative:
    """Split "title line, blank line, body" text into a title and narrative.

    Never fails: empty input gives the default title and an empty narrative,
    a single line is all title, and text without a blank line treats the
    first line as the title and the rest as the body.
    """
    cleaned = (raw or "").strip()
    if not cleaned:
        return TitleNarrative(title=default_title, narrative="")

    parts = _BLANK_LINE.split(cleaned)
    first_block = parts[0]
    remainder = "\n\n".join(part.strip() for part in parts[1:] if part.strip())

    first_line, _, rest_of_block = first_block.partition("\n")
    title = _TITLE_LABEL.sub("", first_line).strip() or default_title

    narrative = "\n\n".join(chunk for chunk in (rest_of_block.strip(), remainder) if chunk)
    return TitleNarrative(title=title, narrative=narrative.strip())


def coerce_title_narrative(value: TitleNarrative | str | None, default_title: str = DEFAULT_TITLE) -> TitleNarrative:
    """Accept a structured result or a legacy bare-string narrative."""
    if isinstance(value, TitleNarrative):
        return value
    return parse_title_narrative(value, default_title=default_title)
