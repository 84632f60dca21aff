"""Data structures for the deck import pipeline.

Rows read from the Anki collection are plain dataclasses; documents written
to Firestore are Pydantic models serialized with their camelCase aliases.
"""

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from deck_importer.services.firebase import SERVER_TIMESTAMP

# Field separator in the notes table
FIELD_SEPARATOR = "\x1f"


@dataclass
class NoteType:
    """Note type (model) stored in ``col.models``.

    Attributes:
        id: Model id (the JSON key).
        name: Model name.
        field_names: Field names ordered by their declared ``ord``.
        templates: Template pairs (``qfmt``/``afmt``) ordered by position.
    """

    id: str
    name: str
    field_names: list[str] = field(default_factory=list)
    templates: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class NoteRow:
    """Row of the ``notes`` table."""

    id: int
    model_id: str
    fields: str
    tags: str

    @property
    def field_values(self) -> list[str]:
        """Raw field values in positional order."""
        return self.fields.split(FIELD_SEPARATOR)


@dataclass
class CardRow:
    """Row of the ``cards`` table."""

    id: int
    note_id: int
    ord: int


@dataclass
class CardBuildInput:
    """A note joined to its card row, note type and template pair."""

    note: NoteRow
    card: CardRow
    note_type: NoteType
    front_template: str
    back_template: str


@dataclass
class Asset:
    """Media file waiting to be uploaded to Storage."""

    source_path: str
    destination: str
    content_type: str
    token: str


@dataclass
class Section:
    """Section created for the deck being imported.

    Attributes:
        id: Firestore document id.
        index: 0-based position within the deck.
        card_count: Cards attributed to the section during this run.
    """

    id: str
    index: int
    card_count: int = 0

    @property
    def name(self) -> str:
        return f"Section {self.index + 1}"


class FirestoreDocument(BaseModel):
    """Base for documents written with camelCase field names."""

    model_config = ConfigDict(populate_by_name=True)

    def to_firestore(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class CardDocument(FirestoreDocument):
    """Card stored at ``decks/{deck_id}/cards/{id}``."""

    section: str
    front: str
    back: str
    view_count: int = Field(default=0, alias="viewCount")
    review_count: int = Field(default=0, alias="reviewCount")
    skip_count: int = Field(default=0, alias="skipCount")
    tags: list[str] = Field(default_factory=list)


class SectionDocument(FirestoreDocument):
    """Section stored at ``decks/{deck_id}/sections/{id}``."""

    name: str
    index: int
    card_count: int = Field(default=0, alias="cardCount")


class DeckDocument(FirestoreDocument):
    """Deck stored at ``decks/{deck_id}``."""

    topics: list[str] = Field(default_factory=list)
    has_image: bool = Field(default=False, alias="hasImage")
    name: str
    subtitle: str = ""
    description: str = ""
    view_count: int = Field(default=0, alias="viewCount")
    unique_view_count: int = Field(default=0, alias="uniqueViewCount")
    rating_count: int = Field(default=0, alias="ratingCount")
    one_star_rating_count: int = Field(default=0, alias="1StarRatingCount")
    two_star_rating_count: int = Field(default=0, alias="2StarRatingCount")
    three_star_rating_count: int = Field(default=0, alias="3StarRatingCount")
    four_star_rating_count: int = Field(default=0, alias="4StarRatingCount")
    five_star_rating_count: int = Field(default=0, alias="5StarRatingCount")
    average_rating: int = Field(default=0, alias="averageRating")
    download_count: int = Field(default=0, alias="downloadCount")
    card_count: int = Field(default=0, alias="cardCount")
    unsectioned_card_count: int = Field(default=0, alias="unsectionedCardCount")
    current_user_count: int = Field(default=0, alias="currentUserCount")
    all_time_user_count: int = Field(default=0, alias="allTimeUserCount")
    favorite_count: int = Field(default=0, alias="favoriteCount")
    creator: str = ""
    source: str = "anki"

    def to_firestore(self) -> dict[str, Any]:
        data = super().to_firestore()
        data["created"] = SERVER_TIMESTAMP
        data["updated"] = SERVER_TIMESTAMP
        return data


@dataclass
class DeckImportResult:
    """Outcome of importing one deck.

    Attributes:
        deck_id: Deck that was processed.
        succeeded: Whether cards were uploaded and the deck directory cleaned up.
        cards_queued: Cards built and attributed to a section.
        cards_skipped: Notes rejected while building cards.
        cards_uploaded: Card documents committed.
        sections_created: Section documents created.
        assets_uploaded: Media files uploaded.
        assets_failed: Media files whose upload failed.
        error: Message of the error that aborted the deck.
    """

    deck_id: str
    succeeded: bool = False
    cards_queued: int = 0
    cards_skipped: int = 0
    cards_uploaded: int = 0
    sections_created: int = 0
    assets_uploaded: int = 0
    assets_failed: int = 0
    error: str | None = None
