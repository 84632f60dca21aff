"""Shared errors package.

Centralized error handling and exception management.
"""

from .base import AppError
from .decorators import safe
from .domain import (
    ArchiveUnpackError,
    AssetResolutionError,
    CardJoinError,
    CollectionReadError,
    DatabaseJoinError,
    DeckNotFoundError,
    EmptyCardSideError,
    LedgerEligibilityError,
    MissingAssetError,
    MissingDownloadKeyError,
    RemoteWriteError,
    UnknownContentTypeError,
)
from .mapping import ExceptionMapper
from .schemas import ErrorDetail, ErrorReport

__all__ = [
    # Base
    "AppError",
    # Ledger
    "LedgerEligibilityError",
    "MissingDownloadKeyError",
    # Deck
    "ArchiveUnpackError",
    "DatabaseJoinError",
    "CollectionReadError",
    "DeckNotFoundError",
    "RemoteWriteError",
    # Card
    "CardJoinError",
    "EmptyCardSideError",
    # Asset
    "AssetResolutionError",
    "UnknownContentTypeError",
    "MissingAssetError",
    # Mapping
    "ExceptionMapper",
    "safe",
    # Schemas
    "ErrorDetail",
    "ErrorReport",
]
