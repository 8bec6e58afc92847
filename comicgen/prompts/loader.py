"""
Versioned prompt templates for the three generation steps.

Templates live in one YAML tree per version:

    v1/
    ├── shared/      # System prompts reused by every step
    ├── beats/       # Beat outline request
    ├── panels/      # Panel script request
    └── narrative/   # Title + blurb request

An entry is either a plain Jinja2 string or a mapping with ``template`` and an
optional ``required_variables`` list. ``render_prompt`` checks the required
variables before rendering and renders with ``StrictUndefined`` so a typo in a
template fails loudly instead of producing a blank.

Usage:
    from comicgen.prompts.loader import render_prompt

    text = render_prompt("prompt_panels", panel_count=6, ...)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from jinja2 import Environment, StrictUndefined, TemplateSyntaxError

logger = logging.getLogger(__name__)

PROMPTS_VERSION = "v1"

_PROMPTS_DIR = Path(__file__).resolve().parent
_STEP_DIRS = ("shared", "beats", "panels", "narrative")

# Injected into every render unless the caller passes its own value.
_SHARED_KEYS = ("system_prompt_json",)

_environment = Environment(
    undefined=StrictUndefined,
    autoescape=False,
    trim_blocks=True,
    lstrip_blocks=True,
)


@dataclass(frozen=True)
class PromptTemplate:
    name: str
    template: str
    required_variables: tuple[str, ...] = ()


def _parse_entry(name: str, value: Any, source: str) -> PromptTemplate | None:
    if isinstance(value, str):
        return PromptTemplate(name=name, template=value)
    if isinstance(value, dict) and isinstance(value.get("template"), str):
        return PromptTemplate(
            name=name,
            template=value["template"],
            required_variables=tuple(value.get("required_variables") or ()),
        )
    logger.warning("prompt entry has no template name=%s source=%s", name, source)
    return None


def _read_step_file(path: Path) -> dict[str, PromptTemplate]:
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path.name} must map prompt names to templates")

    source = f"{path.parent.name}/{path.name}"
    templates: dict[str, PromptTemplate] = {}
    for name, value in data.items():
        entry = _parse_entry(str(name), value, source)
        if entry is None:
            continue
        try:
            _environment.parse(entry.template)
        except TemplateSyntaxError as exc:
            raise ValueError(f"Invalid Jinja2 template in {source}:{name}: {exc}") from exc
        templates[entry.name] = entry
    return templates


@lru_cache(maxsize=1)
def _templates() -> dict[str, PromptTemplate]:
    version_dir = _PROMPTS_DIR / PROMPTS_VERSION
    templates: dict[str, PromptTemplate] = {}
    for step in _STEP_DIRS:
        for path in sorted((version_dir / step).glob("*.yaml")):
            templates.update(_read_step_file(path))
    logger.debug("prompts loaded count=%d version=%s", len(templates), PROMPTS_VERSION)
    return templates


def _lookup(name: str) -> PromptTemplate:
    try:
        return _templates()[name]
    except KeyError:
        raise KeyError(f"Prompt '{name}' not found in {PROMPTS_VERSION}") from None


def render_prompt(name: str, **context: Any) -> str:
    """Render ``name`` with ``context``; shared system text is added automatically.

    Raises:
        KeyError: If the prompt is unknown or a required variable is missing.
    """
    entry = _lookup(name)
    templates = _templates()
    for key in _SHARED_KEYS:
        if key not in context and key in templates:
            context[key] = templates[key].template

    missing = [var for var in entry.required_variables if var not in context]
    if missing:
        raise KeyError(f"Prompt '{name}' is missing variables: {', '.join(missing)}")
    return _environment.from_string(entry.template).render(**context).strip()


def clear_cache() -> None:
    """Drop loaded templates so the next lookup re-reads the YAML tree."""
    _templates.cache_clear()
