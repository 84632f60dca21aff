"""Reader for unpacked Anki collections.

An unpacked .apkg directory contains:
- collection.anki21 / collection.anki2: SQLite database with cards, notes, decks, and models
- media: JSON mapping of numbered file names to original names
- media files (numbered)

Database schema (simplified):
- col: Collection metadata (models, decks, tags)
- notes: Note data (id, guid, mid, tags, flds, sfld)
- cards: Card data (id, nid, did, ord, type, queue)

Models (note types) are stored as JSON in col.models
Decks are stored as JSON in col.decks
"""

import json
import logging
import re
import sqlite3
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from deck_importer.shared.errors import CardJoinError, CollectionReadError, DeckNotFoundError, safe

from .schemas import CardBuildInput, CardRow, NoteRow, NoteType

logger = logging.getLogger(__name__)

# Anki 2.1 first, then Anki 2.0
COLLECTION_FILENAMES = ("collection.anki21", "collection.anki2")
MEDIA_FILENAME = "media"

# Key of the built-in "Default" deck
DEFAULT_DECK_KEY = "1"

DECK_NAME_NOISE_REGEX = re.compile(r"anki|demo|test|::", re.IGNORECASE)
WHITESPACE_REGEX = re.compile(r"\s+")


def find_collection(deck_dir: Path) -> Path:
    """Find the collection database in an unpacked deck directory.

    Raises:
        CollectionReadError: If no database file exists.
    """
    for filename in COLLECTION_FILENAMES:
        db_path = deck_dir / filename
        if db_path.exists():
            return db_path

    raise CollectionReadError(
        "No collection database found in deck directory",
        details={"path": str(deck_dir)},
    )


@safe
def open_collection(db_path: Path) -> sqlite3.Connection:
    """Open a collection database read-only.

    Read-only mode makes a missing file an error instead of silently
    creating an empty database.
    """
    conn = sqlite3.connect(f"{db_path.resolve().as_uri()}?mode=ro", uri=True)
    conn.row_factory = sqlite3.Row
    return conn


@safe
def load_media_map(deck_dir: Path) -> dict[str, str]:
    """Load the media mapping, inverted to filename -> numbered file.

    Args:
        deck_dir: Unpacked deck directory.

    Returns:
        Mapping of original file names to the numbered files on disk.
    """
    media_path = deck_dir / MEDIA_FILENAME
    if not media_path.exists():
        return {}

    content = media_path.read_text(encoding="utf-8").strip()
    media: dict[str, str] = json.loads(content) if content else {}
    return {name: number for number, name in media.items()}


def format_deck_name(name: str) -> str:
    """Clean an Anki deck name for display.

    >>> format_deck_name("Anki::SPANISH demo  vocab")
    'Spanish vocab'
    """
    cleaned = DECK_NAME_NOISE_REGEX.sub(" ", name)
    return WHITESPACE_REGEX.sub(" ", cleaned).strip().capitalize()


class CollectionReader:
    """Reads decks, note types, notes and cards from a collection database.

    All rows are read up front on the single connection; joining happens in
    memory afterwards.

    Example:
        reader = CollectionReader(conn)
        name = reader.read_deck_name()
        for item in reader.iter_card_inputs():
            ...
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialize the reader.

        Args:
            conn: Open connection using ``sqlite3.Row`` rows.
        """
        self.conn = conn

    def _read_col_json(self, column: str) -> dict[str, Any]:
        row = self.conn.execute(f"SELECT {column} FROM col LIMIT 1").fetchone()
        if row is None or not row[column]:
            return {}
        return json.loads(row[column])

    @safe
    def read_deck(self) -> dict[str, Any]:
        """Read the descriptor of the deck contained in the collection.

        Returns:
            Deck descriptor from ``col.decks``.

        Raises:
            DeckNotFoundError: If only the default deck exists.
        """
        decks = self._read_col_json("decks")

        for key, deck in decks.items():
            if key != DEFAULT_DECK_KEY:
                return deck

        raise DeckNotFoundError()

    def read_deck_name(self) -> str:
        """Display name of the deck contained in the collection."""
        return format_deck_name(self.read_deck().get("name", ""))

    @safe
    def read_note_types(self) -> dict[str, NoteType]:
        """Parse note types (models) from ``col.models``.

        Returns:
            Mapping of model id to NoteType.
        """
        models = {}

        for model_id, model_data in self._read_col_json("models").items():
            fields = sorted(model_data.get("flds", []), key=lambda f: f["ord"])

            models[model_id] = NoteType(
                id=model_id,
                name=model_data.get("name", "Unknown"),
                field_names=[f["name"] for f in fields],
                templates=model_data.get("tmpls", []),
            )

        return models

    @safe
    def read_notes(self) -> list[NoteRow]:
        """Read every row of the notes table in row order."""
        cursor = self.conn.execute("SELECT id, mid, flds, tags FROM notes ORDER BY rowid")
        return [
            NoteRow(id=row["id"], model_id=str(row["mid"]), fields=row["flds"] or "", tags=row["tags"] or "")
            for row in cursor
        ]

    @safe
    def read_cards(self) -> list[CardRow]:
        """Read every row of the cards table in row order."""
        cursor = self.conn.execute("SELECT id, nid, ord FROM cards ORDER BY rowid")
        return [CardRow(id=row["id"], note_id=row["nid"], ord=row["ord"]) for row in cursor]

    def iter_card_inputs(self) -> Iterator[CardBuildInput | CardJoinError]:
        """Join every note to its card, note type and template pair.

        Notes that cannot be joined yield a ``CardJoinError`` instead of
        raising, so a single broken note does not stop the iteration.

        Yields:
            One item per note, in row order.
        """
        note_types = self.read_note_types()
        notes = self.read_notes()

        # First card row of every note
        cards_by_note: dict[int, CardRow] = {}
        for card in self.read_cards():
            cards_by_note.setdefault(card.note_id, card)

        logger.info(f"Read {len(notes)} notes and {len(note_types)} note types")

        for note in notes:
            item: CardBuildInput | CardJoinError
            try:
                item = self._join(note, cards_by_note, note_types)
            except CardJoinError as e:
                item = e
            yield item

    def _join(
        self,
        note: NoteRow,
        cards_by_note: dict[int, CardRow],
        note_types: dict[str, NoteType],
    ) -> CardBuildInput:
        card = cards_by_note.get(note.id)
        if card is None:
            raise CardJoinError("Cannot find card", details={"note_id": note.id})

        note_type = note_types.get(note.model_id)
        if note_type is None:
            raise CardJoinError(
                "Cannot find note type",
                details={"note_id": note.id, "model_id": note.model_id},
            )

        if not 0 <= card.ord < len(note_type.templates):
            raise CardJoinError(
                "Cannot find card template",
                details={"note_id": note.id, "model_id": note.model_id, "card_ord": card.ord},
            )

        template = note_type.templates[card.ord]
        return CardBuildInput(
            note=note,
            card=card,
            note_type=note_type,
            front_template=template.get("qfmt", ""),
            back_template=template.get("afmt", ""),
        )
