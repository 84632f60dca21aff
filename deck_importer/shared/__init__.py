"""Shared utilities used across the importer modules."""

from .context import deck_id_var, get_deck_id, set_deck_id

__all__ = [
    "deck_id_var",
    "get_deck_id",
    "set_deck_id",
]
