"""Domain error types.

Catalog of errors raised by the import pipeline, grouped by the unit of work
they make unsalvageable: a ledger entry, a whole deck, a single card or a
single asset.
"""

from .base import AppError


class LedgerEligibilityError(AppError):
    """Deck is not eligible for download."""


class MissingDownloadKeyError(LedgerEligibilityError):
    """Download redirect is missing the k query parameter."""


class ArchiveUnpackError(AppError):
    """Deck archive could not be unpacked."""


class DatabaseJoinError(AppError):
    """Collection data could not be joined."""


class CollectionReadError(DatabaseJoinError):
    """Collection database could not be read."""


class DeckNotFoundError(DatabaseJoinError):
    """Unable to retrieve deck from collection database."""


class CardJoinError(DatabaseJoinError):
    """Note could not be joined to a card template."""


class EmptyCardSideError(AppError):
    """One of the card sides is empty."""


class AssetResolutionError(AppError):
    """Asset could not be resolved."""


class UnknownContentTypeError(AssetResolutionError):
    """Unknown content type."""


class MissingAssetError(AssetResolutionError):
    """Asset is not listed in the media map."""


class RemoteWriteError(AppError):
    """Remote store rejected the write."""
