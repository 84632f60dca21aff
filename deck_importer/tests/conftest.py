"""Pytest configuration and fixtures for deck importer tests."""

import itertools
import json
import sqlite3
import zipfile
from collections.abc import Callable
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from deck_importer.modules.importer.context import ImportContext
from deck_importer.modules.ledger import JobLedger
from deck_importer.services.firebase import FirestoreClient, StorageClient

BASIC_MODEL_ID = "1342697561419"
DECK_KEY = "1526934187342"


# ==================== Collection Builders ====================


def basic_model(
    field_names: tuple[str, ...] = ("Front", "Back"),
    templates: tuple[tuple[str, str], ...] = (("{{Front}}", "{{Back}}"),),
) -> dict:
    """Note type JSON as stored in ``col.models``."""
    return {
        "name": "Basic",
        "flds": [{"name": name, "ord": i} for i, name in enumerate(field_names)],
        "tmpls": [
            {"name": f"Card {i + 1}", "ord": i, "qfmt": qfmt, "afmt": afmt}
            for i, (qfmt, afmt) in enumerate(templates)
        ],
    }


def build_collection(
    db_path: Path,
    *,
    decks: dict | None = None,
    models: dict | None = None,
    notes: list[tuple[int, str, str, str]] | None = None,
    cards: list[tuple[int, int, int]] | None = None,
) -> Path:
    """Create a minimal Anki collection database.

    Args:
        db_path: Database file to create.
        decks: ``col.decks`` JSON; defaults to the default deck plus one deck.
        models: ``col.models`` JSON; defaults to one Basic note type.
        notes: ``(id, mid, tags, flds)`` rows.
        cards: ``(id, nid, ord)`` rows.

    Returns:
        Path of the database.
    """
    if decks is None:
        decks = {
            "1": {"name": "Default", "id": 1},
            DECK_KEY: {"name": "Anki::Spanish vocab", "id": int(DECK_KEY)},
        }
    if models is None:
        models = {BASIC_MODEL_ID: basic_model()}

    conn = sqlite3.connect(db_path)
    try:
        conn.execute(
            "CREATE TABLE col (id INTEGER PRIMARY KEY, crt INTEGER, mod INTEGER, "
            "models TEXT, decks TEXT, tags TEXT)"
        )
        conn.execute(
            "INSERT INTO col (id, crt, mod, models, decks, tags) VALUES (1, 0, 0, ?, ?, '{}')",
            (json.dumps(models), json.dumps(decks)),
        )
        conn.execute(
            "CREATE TABLE notes (id INTEGER PRIMARY KEY, guid TEXT, mid INTEGER, "
            "tags TEXT, flds TEXT, sfld TEXT)"
        )
        conn.executemany(
            "INSERT INTO notes (id, guid, mid, tags, flds, sfld) VALUES (?, 'guid', ?, ?, ?, '')",
            notes or [],
        )
        conn.execute("CREATE TABLE cards (id INTEGER PRIMARY KEY, nid INTEGER, did INTEGER, ord INTEGER)")
        conn.executemany(
            f"INSERT INTO cards (id, nid, did, ord) VALUES (?, ?, {DECK_KEY}, ?)",
            cards or [],
        )
        conn.commit()
    finally:
        conn.close()

    return db_path


@pytest.fixture
def make_deck(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing ``downloads/{deck_id}/main.apkg`` archives.

    The archive holds ``collection.anki21``, the ``media`` index and one
    numbered file per media entry.
    """
    downloads = tmp_path / "downloads"

    def _make(
        deck_id: str = "1234",
        *,
        media: dict[str, bytes] | None = None,
        **collection: object,
    ) -> Path:
        deck_dir = downloads / deck_id
        deck_dir.mkdir(parents=True)
        db_path = build_collection(tmp_path / f"{deck_id}.anki21", **collection)  # type: ignore[arg-type]

        media = media or {}
        with zipfile.ZipFile(deck_dir / "main.apkg", "w") as zf:
            zf.write(db_path, "collection.anki21")
            zf.writestr("media", json.dumps({str(i): name for i, name in enumerate(media)}))
            for i, content in enumerate(media.values()):
                zf.writestr(str(i), content)

        db_path.unlink()
        return deck_dir

    return _make


# ==================== Remote Store Fixtures ====================


@pytest.fixture
def mock_store() -> AsyncMock:
    """Firestore client double handing out sequential document ids."""
    store = AsyncMock(spec=FirestoreClient)
    counter = itertools.count(1)
    store.new_document_id = MagicMock(side_effect=lambda: f"doc{next(counter)}")
    return store


@pytest.fixture
def mock_storage() -> AsyncMock:
    """Storage client double accepting every upload."""
    storage = AsyncMock(spec=StorageClient)
    storage.upload.return_value = {}
    return storage


@pytest.fixture
def import_context(tmp_path: Path) -> ImportContext:
    """Import context for deck 1234 unpacked into ``tmp_path``."""
    return ImportContext(
        deck_id="1234",
        deck_dir=tmp_path,
        media_map={"cat.png": "0", "meow.mp3": "1", "notes.xyz123": "2"},
    )


@pytest.fixture
def ledger(tmp_path: Path) -> JobLedger:
    """Ledger file with one downloaded and one pending deck."""
    path = tmp_path / "decks.json"
    path.write_text(
        json.dumps(
            {
                "1234": {"downloaded": True, "imported": False, "topics": ["topic-1"]},
                "5678": {"downloaded": False, "imported": False, "topics": []},
            }
        )
    )
    return JobLedger(path)
