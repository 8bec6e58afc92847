import json
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from comicgen.core.request_context import get_generation_id, get_provider, get_step
from comicgen.core.settings import AppSettings

_LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
_LOG_FILE_BACKUPS = 5


class GenerationContextFilter(logging.Filter):
    """Stamp records with the generation id, step and provider in scope."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.generation_id = get_generation_id() or "unknown"
        record.step = get_step() or ""
        record.provider = get_provider() or ""
        return True


class StructuredJsonFormatter(logging.Formatter):
    """One JSON object per record: fixed fields, generation context, then ``extra=`` fields."""

    # Attributes every LogRecord carries, plus the context fields emitted explicitly.
    _RESERVED = frozenset(vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))) | {
        "message",
        "asctime",
        "generation_id",
        "step",
        "provider",
    }

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "generation_id": getattr(record, "generation_id", None) or "unknown",
            "step": getattr(record, "step", "") or "",
        }
        provider = getattr(record, "provider", None)
        if provider:
            payload["provider"] = provider
        payload.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in self._RESERVED and not key.startswith("_") and value is not None
        )
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack_info"] = self.formatStack(record.stack_info)
        return json.dumps(payload, default=str)


def _json_handler(handler: logging.Handler, formatter: logging.Formatter) -> logging.Handler:
    handler.setFormatter(formatter)
    handler.addFilter(GenerationContextFilter())
    return handler


def configure_logging(settings: AppSettings | None = None) -> None:
    """Replace the root logger's handlers with JSON stream (and optional file) handlers.

    Embedding applications call this once at startup; the library itself only
    emits records through module loggers.
    """
    settings = settings or AppSettings()
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    formatter = StructuredJsonFormatter(datefmt="%Y-%m-%dT%H:%M:%S%z")
    root_logger.addHandler(_json_handler(logging.StreamHandler(), formatter))

    if settings.log_file:
        log_path = Path(settings.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=_LOG_FILE_MAX_BYTES,
            backupCount=_LOG_FILE_BACKUPS,
            encoding="utf-8",
        )
        root_logger.addHandler(_json_handler(file_handler, formatter))

    # SDK transport logs are noisy at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
