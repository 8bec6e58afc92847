"""Tests for comicgen exception types."""

import pytest

from comicgen.core.exceptions import (
    AppError,
    BackendAuthError,
    BackendError,
    BackendRateLimitError,
    BackendTimeoutError,
    BackendUnavailableError,
    ConfigurationError,
    ExtractionError,
    NoPhotosError,
    PipelineTimeoutError,
    ProviderNotConfiguredError,
    SchemaValidationError,
)


class TestAppError:
    def test_message_and_detail(self):
        err = AppError("something broke", detail="user-friendly msg")
        assert str(err) == "something broke"
        assert err.detail == "user-friendly msg"

    def test_detail_defaults_to_message(self):
        err = AppError("fallback message")
        assert err.detail == "fallback message"


class TestDomainExceptions:
    @pytest.mark.parametrize(
        "exc_class",
        [ConfigurationError, ExtractionError, SchemaValidationError, BackendError,
         NoPhotosError, PipelineTimeoutError],
    )
    def test_inherits_app_error(self, exc_class):
        assert issubclass(exc_class, AppError)

    @pytest.mark.parametrize(
        "exc_class",
        [BackendRateLimitError, BackendAuthError, BackendTimeoutError, BackendUnavailableError],
    )
    def test_backend_errors_share_a_base(self, exc_class):
        assert issubclass(exc_class, BackendError)
        err = exc_class("call failed", provider="openai", model="gpt-4o")
        assert err.provider == "openai"
        assert err.model == "gpt-4o"

    def test_extraction_error_keeps_preview(self):
        err = ExtractionError("bad json", preview="{oops")
        assert err.preview == "{oops"
        assert err.detail == "Model response was not valid JSON"

    def test_schema_validation_error_keeps_errors(self):
        err = SchemaValidationError("beats failed", errors=[{"loc": ("0", "type")}])
        assert err.errors == [{"loc": ("0", "type")}]
        assert SchemaValidationError("x").errors == []


class TestProviderNotConfiguredError:
    def test_names_the_env_var(self):
        err = ProviderNotConfiguredError("anthropic", "ANTHROPIC_API_KEY")
        assert isinstance(err, ConfigurationError)
        assert "ANTHROPIC_API_KEY" in str(err)
        assert err.provider == "anthropic"
        assert err.detail == "anthropic provider unavailable"


class TestPipelineTimeoutError:
    def test_message_with_step(self):
        err = PipelineTimeoutError(45.0, step="narrative")
        assert str(err) == "Story generation timed out after 45s during narrative"
        assert err.step == "narrative"

    def test_message_without_step(self):
        assert str(PipelineTimeoutError(1.5)) == "Story generation timed out after 1.5s"

    def test_no_photos(self):
        assert NoPhotosError().detail == "no_photos"
