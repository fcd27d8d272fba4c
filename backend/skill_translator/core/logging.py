"""
Structured logging configuration for the skill translator.

Every record carries the current request id and document path when they are
set, in JSON for machines or as a coloured line for people.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from skill_translator.core.config import Settings

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
document_path_var: ContextVar[str | None] = ContextVar("document_path", default=None)

# Attributes every LogRecord carries; anything else was passed via `extra=`
_RESERVED_RECORD_ATTRS = set(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime"}

NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore")


def current_context() -> dict[str, str]:
    """Request id and document path of the running task, when set."""
    context = {}
    request_id = request_id_var.get()
    if request_id:
        context["request_id"] = request_id
    document_path = document_path_var.get()
    if document_path:
        context["document_path"] = document_path
    return context


# =============================================================================
# Formatters
# =============================================================================


class JSONFormatter(logging.Formatter):
    """One JSON object per record, including `extra=` fields and tracebacks."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **current_context(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        entry.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _RESERVED_RECORD_ATTRS and not key.startswith("_")
        )

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            entry["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(entry, default=str, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """Coloured single-line output for local development."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.fromtimestamp(record.created, timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

        context = current_context()
        tags = []
        if "request_id" in context:
            tags.append(f"req={context['request_id'][:8]}")
        if "document_path" in context:
            tags.append(f"doc={context['document_path']}")
        tag_str = f" [{', '.join(tags)}]" if tags else ""

        line = f"{color}{timestamp} {record.levelname:8s}{self.RESET} {record.name}{tag_str}: {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


# =============================================================================
# Configuration
# =============================================================================


def configure_logging(settings: Settings) -> None:
    """Install handlers on the root logger according to the LOG_* settings."""
    level = getattr(logging, settings.log_level)
    formatter = JSONFormatter() if settings.log_format == "json" else TextFormatter()

    handlers: list[logging.Handler] = []
    if settings.log_output in ("stdout", "both"):
        handlers.append(logging.StreamHandler(sys.stdout))
    if settings.log_output in ("file", "both"):
        log_file = Path(settings.log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class DocumentLogContext:
    """
    Tag log records with a document path for the duration of a block.

    Example:
        with DocumentLogContext("skills/web-monitor/SKILL.md"):
            logger.info("Translating document")
    """

    def __init__(self, document_path: str | None):
        self.document_path = document_path
        self._token = None

    def __enter__(self) -> "DocumentLogContext":
        self._token = document_path_var.set(self.document_path)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            document_path_var.reset(self._token)
            self._token = None
