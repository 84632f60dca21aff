"""Deck import pipeline."""

from .schemas import CardDocument, DeckImportResult
from .service import DeckImportService

__all__ = [
    "CardDocument",
    "DeckImportResult",
    "DeckImportService",
]
