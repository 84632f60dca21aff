"""Mapping of infrastructure errors to domain errors.

Centralized exception mapping for sqlite3, JSON decoding, zip archives and
the HTTP client.
"""

import json
import logging
import sqlite3
import zipfile
from collections.abc import Callable
from typing import Any

from httpx import ConnectError, HTTPError, HTTPStatusError, TimeoutException

from .base import AppError
from .domain import ArchiveUnpackError, CollectionReadError, RemoteWriteError

logger = logging.getLogger(__name__)


class ExceptionMapper:
    """Centralized mapping of technical exceptions to domain exceptions."""

    _handlers: dict[type[Exception], Callable[[Exception, str], AppError]] = {}

    @classmethod
    def register(
        cls, *exception_types: type[Exception]
    ) -> Callable[[Callable[[Any, str], AppError]], Callable[[Any, str], AppError]]:
        """Register a handler for exception types.

        Usage:
            @ExceptionMapper.register(sqlite3.Error)
            def _handle_sqlite_error(exc: sqlite3.Error, func_name: str) -> AppError:
                return CollectionReadError(message=str(exc))
        """

        def decorator(
            handler: Callable[[Any, str], AppError]
        ) -> Callable[[Any, str], AppError]:
            for exc_type in exception_types:
                cls._handlers[exc_type] = handler
            return handler

        return decorator

    @classmethod
    def map(cls, exc: Exception, func_name: str = "") -> AppError:
        """Map a technical exception to a domain exception.

        Args:
            exc: The technical exception to map
            func_name: Name of the function where exception occurred (for logging)

        Returns:
            Mapped domain exception (AppError subclass)
        """
        handler = cls._handlers.get(type(exc))

        if handler is None:
            for exc_type, exc_handler in cls._handlers.items():
                if isinstance(exc, exc_type):
                    handler = exc_handler
                    break

        if handler:
            return handler(exc, func_name)

        logger.exception(f"Unhandled exception in {func_name}: {type(exc).__name__}")
        return AppError(
            message=str(exc) or AppError.default_message,
            details={"operation": func_name} if func_name else {},
        )


# --- Register default handlers ---


@ExceptionMapper.register(sqlite3.Error)
def _handle_sqlite_error(exc: sqlite3.Error, func_name: str) -> AppError:
    """SQLite: the collection file is missing, locked or malformed."""
    logger.error(f"Collection database error in {func_name}: {exc}")
    return CollectionReadError(
        message=f"Collection database error: {exc}",
        details={"service": "sqlite", "operation": func_name},
    )


@ExceptionMapper.register(json.JSONDecodeError)
def _handle_json_error(exc: json.JSONDecodeError, func_name: str) -> AppError:
    """JSON: a collection column or the media file is not valid JSON."""
    return CollectionReadError(
        message=f"JSON parsing error: {exc}",
        details={"operation": func_name},
    )


@ExceptionMapper.register(zipfile.BadZipFile)
def _handle_zip_error(exc: zipfile.BadZipFile, func_name: str) -> AppError:
    """Zip: the downloaded archive is corrupt."""
    return ArchiveUnpackError(
        message=f"Not a valid .apkg file: {exc}",
        details={"operation": func_name},
    )


@ExceptionMapper.register(TimeoutException, ConnectError, HTTPError)
def _handle_httpx_error(exc: Exception, func_name: str) -> AppError:
    """HTTPX: remote store error."""
    status = None
    if isinstance(exc, HTTPStatusError):
        status = exc.response.status_code

    if isinstance(status, int) and status >= 500:
        logger.error(f"Remote store HTTP 5xx in {func_name}")
    else:
        logger.warning(f"Remote store HTTP error in {func_name}: {exc}")

    details: dict[str, Any] = {"service": "http_client", "operation": func_name}
    if status:
        details["status"] = status

    return RemoteWriteError(
        message=f"Remote store request failed: {exc}",
        details=details,
    )
