"""Job ledger records."""

from pydantic import BaseModel, Field


class DeckJob(BaseModel):
    """Progress of one deck through the migration.

    Attributes:
        downloaded: Archive fetched successfully and not rolled back.
        imported: Reserved completion flag, not written by the importer.
        topics: Topic ids attached to the deck document.
    """

    downloaded: bool = False
    imported: bool = False
    topics: list[str] = Field(default_factory=list)
