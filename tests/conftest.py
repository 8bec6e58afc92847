import os

import pytest

from comicgen.prompts.loader import clear_cache

_PROVIDER_ENV_PREFIXES = ("OPENAI_", "ANTHROPIC_")
_APP_ENV_VARS = ("AI_PROVIDER", "STORY_TIMEOUT_SECONDS", "LOG_LEVEL", "LOG_FILE")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path):
    """Run every test against an empty provider environment."""
    for key in list(os.environ):
        if key.startswith(_PROVIDER_ENV_PREFIXES) or key in _APP_ENV_VARS:
            monkeypatch.delenv(key, raising=False)
    # Keep a developer's .env file out of the settings sources.
    monkeypatch.chdir(tmp_path)
    yield
    clear_cache()


@pytest.fixture()
def anyio_backend():
    return "asyncio"
