"""Deck importer - Shared Logging Configuration.

Loguru-based logging module with:
- Structured JSON logging for production
- Colored console output for development
- Deck id correlation
- Automatic sensitive data redaction
"""

from loguru import logger

from .config import (
    InterceptHandler,
    build_log_entry,
    configure_third_party_loggers,
    get_logger,
    setup_logger,
)
from .event_logger import (
    log_asset_upload_failed,
    log_card_skipped,
    log_chunk_uploaded,
    log_deck_import_completed,
    log_deck_import_failed,
    log_deck_import_started,
)

__all__ = [
    # Core logging
    "logger",
    "setup_logger",
    "get_logger",
    "build_log_entry",
    "InterceptHandler",
    "configure_third_party_loggers",
    # Event logging
    "log_deck_import_started",
    "log_deck_import_completed",
    "log_deck_import_failed",
    "log_card_skipped",
    "log_chunk_uploaded",
    "log_asset_upload_failed",
]
