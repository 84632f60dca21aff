"""``@safe``: keep sqlite, zip and HTTP exceptions out of the import pipeline.

Readers and remote clients are wrapped so that callers only ever see
``AppError`` subclasses, with the original exception chained as ``__cause__``.
"""

import logging
from collections.abc import Callable
from functools import partial, wraps
from inspect import iscoroutinefunction
from typing import Never, ParamSpec, TypeVar

from .base import AppError
from .mapping import ExceptionMapper

logger = logging.getLogger(__name__)
P = ParamSpec("P")
T = TypeVar("T")


def _translate(error: Exception, operation: str) -> Never:
    if isinstance(error, AppError):
        raise error

    mapped = ExceptionMapper.map(error, operation)
    logger.debug(f"{operation} failed with {type(error).__name__}, raised as {mapped.code}")
    raise mapped from error


def safe(func: Callable[P, T] | None = None, *, operation: str | None = None):
    """Translate infrastructure exceptions raised by ``func`` into domain errors.

    ``operation`` labels the error details; it defaults to the function name.
    Both forms are accepted::

        @safe
        def read_notes(self) -> list[NoteRow]: ...

        @safe(operation="upload")
        async def _send(self, ...) -> dict: ...
    """
    if func is None:
        return partial(safe, operation=operation)

    name = operation or func.__name__

    if iscoroutinefunction(func):

        @wraps(func)
        async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                _translate(e, name)

        return async_wrapper

    @wraps(func)
    def sync_wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        try:
            return func(*args, **kwargs)
        except Exception as e:
            _translate(e, name)

    return sync_wrapper
