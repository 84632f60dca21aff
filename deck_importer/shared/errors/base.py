"""Root of the importer error hierarchy.

Subclasses only declare a docstring: the class name gives the error code
(``EmptyCardSideError`` -> ``EMPTY_CARD_SIDE``) and the first docstring
line the default message.
"""

import logging
import re
from typing import Any

from pydantic import ValidationError

from ..context import get_deck_id
from .schemas import ErrorDetail, ErrorReport

logger = logging.getLogger(__name__)

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def _code_from_name(class_name: str) -> str:
    """``DeckNotFoundError`` -> ``DECK_NOT_FOUND``."""
    stem = re.sub(r"(Exception|Error)$", "", class_name) or class_name
    return _CAMEL_BOUNDARY.sub("_", stem).upper()


def _clean_details(owner: str, details: dict[str, Any] | ErrorDetail | None) -> dict[str, Any]:
    """Drop unset known fields; keep the raw dict when it does not validate."""
    if details is None:
        return {}
    if isinstance(details, ErrorDetail):
        return details.model_dump(exclude_none=True)
    try:
        return ErrorDetail.model_validate(details).model_dump(exclude_none=True)
    except ValidationError as e:
        logger.warning(f"{owner} raised with malformed details: {e.error_count()} issue(s)")
        return dict(details)


class AppError(Exception):
    """Internal importer error"""

    code: str = "INTERNAL_ERROR"
    default_message: str = "Internal importer error"

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | ErrorDetail | None = None,
        code: str | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.details = _clean_details(type(self).__name__, details)
        if code is not None:
            self.code = code
        # The import running when the error was raised
        self.deck_id = get_deck_id()
        super().__init__(self.message)

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if "code" not in cls.__dict__:
            cls.code = _code_from_name(cls.__name__)
        if "default_message" not in cls.__dict__ and cls.__doc__:
            cls.default_message = cls.__doc__.strip().splitlines()[0]

    def to_dict(self) -> dict[str, Any]:
        """Flat form used in failure logs and the CLI summary."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
            "deck_id": self.deck_id,
        }

    def to_report(self) -> ErrorReport:
        return ErrorReport.model_validate(self.to_dict())
