"""
Context variables for deck-level log correlation.

The deck id of the import currently in progress is kept in a context
variable so that every log record emitted while processing it can be
tagged without passing the id through every call.
"""

from contextvars import ContextVar

deck_id_var: ContextVar[str] = ContextVar("deck_id", default="")


def get_deck_id() -> str:
    """Get the deck id of the current import.

    Returns:
        Deck id string or empty string if not set.
    """
    return deck_id_var.get()


def set_deck_id(deck_id: str) -> None:
    """Set the deck id of the current import.

    Args:
        deck_id: Deck id to set.
    """
    deck_id_var.set(deck_id)
