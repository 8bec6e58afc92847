"""Tests for structured JSON logging and generation context propagation."""

import json
import logging

from comicgen.core.logging import GenerationContextFilter, StructuredJsonFormatter, configure_logging
from comicgen.core.metrics import get_metrics_payload
from comicgen.core.request_context import (
    get_generation_id,
    get_provider,
    get_step,
    log_context,
    new_generation_id,
    reset_generation_id,
    set_generation_id,
)
from comicgen.core.settings import AppSettings


def _record(msg: str = "hello %s", args=("world",), **extra) -> logging.LogRecord:
    record = logging.LogRecord("comicgen.test", logging.INFO, __file__, 10, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestLogContext:
    def test_nested_context_restores_previous_values(self):
        with log_context(generation_id="gen-1", provider="openai"):
            with log_context(step="beats"):
                assert (get_generation_id(), get_step(), get_provider()) == ("gen-1", "beats", "openai")
            assert get_step() is None
        assert get_generation_id() is None
        assert get_provider() is None

    def test_set_and_reset_generation_id(self):
        token = set_generation_id("abc")
        assert get_generation_id() == "abc"
        reset_generation_id(token)
        assert get_generation_id() is None

    def test_new_generation_ids_are_short_and_unique(self):
        first, second = new_generation_id(), new_generation_id()
        assert len(first) == 12
        assert first != second


class TestStructuredJsonFormatter:
    def test_emits_context_fields(self):
        record = _record()
        with log_context(generation_id="gen-7", step="panels", provider="anthropic"):
            GenerationContextFilter().filter(record)
        payload = json.loads(StructuredJsonFormatter().format(record))

        assert payload["message"] == "hello world"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "comicgen.test"
        assert payload["generation_id"] == "gen-7"
        assert payload["step"] == "panels"
        assert payload["provider"] == "anthropic"

    def test_outside_a_generation(self):
        record = _record()
        GenerationContextFilter().filter(record)
        payload = json.loads(StructuredJsonFormatter().format(record))
        assert payload["generation_id"] == "unknown"
        assert "provider" not in payload

    def test_extra_fields_are_included(self):
        record = _record(panel_count=6, ignored=None)
        payload = json.loads(StructuredJsonFormatter().format(record))
        assert payload["panel_count"] == 6
        assert "ignored" not in payload


class TestConfigureLogging:
    def test_installs_json_handlers(self, tmp_path):
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level
        log_file = tmp_path / "logs" / "comicgen.log"
        try:
            configure_logging(AppSettings(LOG_LEVEL="debug", LOG_FILE=str(log_file)))
            assert root.level == logging.DEBUG
            assert len(root.handlers) == 2
            assert all(isinstance(h.formatter, StructuredJsonFormatter) for h in root.handlers)

            logging.getLogger("comicgen.test").info("to file")
            for handler in root.handlers:
                handler.flush()
            line = log_file.read_text(encoding="utf-8").strip().splitlines()[-1]
            assert json.loads(line)["message"] == "to file"
        finally:
            for handler in list(root.handlers):
                root.removeHandler(handler)
                handler.close()
            for handler in saved_handlers:
                root.addHandler(handler)
            root.setLevel(saved_level)


def test_metrics_payload_is_prometheus_text():
    payload = get_metrics_payload().decode()
    assert "comicgen_story_generations_total" in payload
    assert "comicgen_pipeline_step_duration_seconds" in payload
