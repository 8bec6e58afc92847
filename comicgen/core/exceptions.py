"""
Error taxonomy for the comic generation core.

Every failure that leaves the pipeline is one of these types so callers can
decide policy (mark a story as failed, retry with backoff, surface an error)
by kind instead of by parsing messages.
"""

from __future__ import annotations


class AppError(Exception):
    """Base exception for all comicgen errors."""

    def __init__(self, message: str, *, detail: str | None = None) -> None:
        self.detail = detail or message
        super().__init__(message)


class ConfigurationError(AppError):
    """Raised when required configuration is missing or invalid."""


class ProviderNotConfiguredError(ConfigurationError):
    """Raised when a live provider is requested without its credential."""

    def __init__(self, provider: str, env_var: str) -> None:
        super().__init__(
            f"{provider} is not configured. Set {env_var}.",
            detail=f"{provider} provider unavailable",
        )
        self.provider = provider
        self.env_var = env_var


class NoPhotosError(AppError):
    """Raised when a generation request carries no photos."""

    def __init__(self) -> None:
        super().__init__("No photos supplied for story generation", detail="no_photos")


class ExtractionError(AppError):
    """Raised when backend text contains no recoverable JSON."""

    def __init__(self, message: str, *, preview: str = "") -> None:
        super().__init__(message, detail="Model response was not valid JSON")
        self.preview = preview


class SchemaValidationError(AppError):
    """Raised when recovered JSON violates the beat/panel contract."""

    def __init__(self, message: str, *, errors: list[dict] | None = None) -> None:
        super().__init__(message, detail="Model response did not match the expected shape")
        self.errors = errors or []


class PipelineTimeoutError(AppError):
    """Raised when the beats -> panels -> narrative chain exceeds its budget."""

    def __init__(self, timeout_seconds: float, step: str | None = None) -> None:
        where = f" during {step}" if step else ""
        super().__init__(
            f"Story generation timed out after {timeout_seconds:g}s{where}",
            detail="timeout",
        )
        self.timeout_seconds = timeout_seconds
        self.step = step


class BackendError(AppError):
    """Raised when the underlying model call fails before returning text."""

    def __init__(
        self,
        message: str,
        *,
        provider: str | None = None,
        model: str | None = None,
        detail: str | None = None,
    ) -> None:
        super().__init__(message, detail=detail)
        self.provider = provider
        self.model = model


class BackendRateLimitError(BackendError):
    """Raised when the backend rejects the call for rate limiting or quota."""


class BackendAuthError(BackendError):
    """Raised when the backend rejects the credential."""


class BackendTimeoutError(BackendError):
    """Raised when the backend call itself times out."""


class BackendUnavailableError(BackendError):
    """Raised when the backend or model is temporarily unavailable."""
