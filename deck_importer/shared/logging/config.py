"""Deck importer - Logger Configuration.

Every importer module logs through ``logging.getLogger(__name__)``; the
records are routed into Loguru, tagged with the deck being imported and
written to:

- stderr, colored, for interactive runs (``LOG_FORMAT=console``)
- stdout as one JSON object per line (``LOG_FORMAT=json``)
- optionally a rotating file (``LOG_FILE``), JSON, for long migrations
"""

from __future__ import annotations

import json
import logging
import re
import sys
from typing import TYPE_CHECKING, Any

from loguru import logger

from ..context import get_deck_id

if TYPE_CHECKING:
    from deck_importer.core.config import Settings

# Placeholder deck id when no import is running
NO_DECK = "-"

REDACTED = "***REDACTED***"
SENSITIVE_KEY_REGEX = re.compile(r"password|token|secret|key|auth|credential", re.IGNORECASE)

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>deck={extra[deck_id]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

# Libraries logging every request at INFO
QUIET_LOGGERS = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
}


def _get_settings() -> Settings:
    """Get settings lazily to avoid circular imports."""
    from deck_importer.core.config import get_settings

    return get_settings()


class InterceptHandler(logging.Handler):
    """Forward standard logging records to Loguru, keeping the caller's location."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip the logging module's own frames
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _deck_patcher(record: dict[str, Any]) -> None:
    record["extra"]["deck_id"] = get_deck_id() or NO_DECK


def redact(key: str, value: Any) -> Any:
    """Mask a value whose key looks like a credential, recursing into dicts.

    >>> redact("access_token", "ya29.abc")
    '***REDACTED***'
    >>> redact("upload", {"owner": "admin", "firebaseStorageDownloadTokens": "t"})
    {'owner': 'admin', 'firebaseStorageDownloadTokens': '***REDACTED***'}
    """
    if SENSITIVE_KEY_REGEX.search(key):
        return REDACTED
    if isinstance(value, dict):
        return {k: redact(k, v) for k, v in value.items()}
    return value


def build_log_entry(record: dict[str, Any], service_name: str) -> dict[str, Any]:
    """Build the JSON document written for a Loguru record.

    Bound and keyword extras (``event``, ``note_id``...) become top-level
    keys; credentials are redacted.
    """
    extra = dict(record["extra"])
    module = extra.pop("name", record["name"])

    log_entry: dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "module": module,
        "function": record["function"],
        "line": record["line"],
        "deck_id": extra.pop("deck_id", NO_DECK),
        "service": service_name,
    }
    log_entry.update((key, redact(key, value)) for key, value in extra.items() if not key.startswith("_"))

    exception = record.get("exception")
    if exception:
        log_entry["exception"] = {
            "type": exception.type.__name__ if exception.type else None,
            "value": str(exception.value) if exception.value else None,
        }

    return log_entry


def _json_sink(stream: Any, service_name: str) -> Any:
    def sink(message: Any) -> None:
        entry = build_log_entry(message.record, service_name)
        stream.write(json.dumps(entry, ensure_ascii=False, default=str) + "\n")
        stream.flush()

    return sink


def _json_line(service_name: str) -> Any:
    """Loguru format callable rendering a record as one JSON line."""

    def formatter(record: dict[str, Any]) -> str:
        record["extra"]["_json"] = json.dumps(
            build_log_entry(record, service_name), ensure_ascii=False, default=str
        )
        return "{extra[_json]}\n"

    return formatter


def setup_logger() -> None:
    """Configure Loguru sinks and route standard logging into them."""
    settings = _get_settings()
    level = settings.logging.level.upper()
    service_name = settings.app.name

    logger.remove()
    logger.configure(patcher=_deck_patcher)

    if settings.logging.format.lower() == "json":
        logger.add(_json_sink(sys.stdout, service_name), level=level, diagnose=False)
    else:
        logger.add(
            sys.stderr,
            format=CONSOLE_FORMAT,
            level=level,
            colorize=True,
            backtrace=settings.app.debug,
            diagnose=settings.app.debug,
        )

    if settings.logging.file is not None:
        logger.add(
            settings.logging.file,
            format=_json_line(service_name),
            level=level,
            rotation=settings.logging.rotation,
            retention=settings.logging.retention,
            encoding="utf-8",
            diagnose=False,
        )

    configure_third_party_loggers(level)

    logger.debug(f"Logging configured at {level} ({settings.logging.format})")


def configure_third_party_loggers(level: str | int = logging.INFO) -> None:
    """Send every standard logging record through ``InterceptHandler``.

    The root logger gets the configured level; ``QUIET_LOGGERS`` are capped.
    """
    logging.basicConfig(handlers=[InterceptHandler()], level=level, force=True)

    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)


def get_logger(name: str):
    """Get a Loguru logger bound to ``name`` (usually ``__name__``)."""
    return logger.bind(name=name)
