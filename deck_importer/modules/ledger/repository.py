"""JSON file backed job ledger.

The ledger is the only record of which decks have been downloaded; it is
rewritten in full after every change so an interrupted run can resume.
"""

import json
import logging
from collections.abc import Iterator
from pathlib import Path

from pydantic import TypeAdapter

from .schemas import DeckJob

logger = logging.getLogger(__name__)

_JOBS_ADAPTER = TypeAdapter(dict[str, DeckJob])


class JobLedger:
    """Ledger of deck jobs keyed by deck id, persisted as one JSON object.

    Example:
        >>> ledger = JobLedger(Path("decks.json"))
        >>> ledger.mark_downloaded("123")
        >>> ledger.save()
    """

    def __init__(self, path: Path) -> None:
        """Load the ledger.

        Args:
            path: JSON file, ``{deck_id: {downloaded, imported, topics}}``.

        Raises:
            pydantic.ValidationError: If the file is not a valid ledger.
        """
        self.path = Path(path)
        self.jobs: dict[str, DeckJob] = {}
        self._load()

    def _load(self) -> None:
        """Load jobs from disk; a missing file is an empty ledger."""
        if not self.path.exists():
            logger.warning(f"Ledger {self.path} does not exist, starting empty")
            return

        self.jobs = _JOBS_ADAPTER.validate_json(self.path.read_bytes())
        logger.info(f"Loaded {len(self.jobs)} deck jobs from {self.path}")

    def save(self) -> None:
        """Overwrite the ledger file with the current jobs."""
        data = {deck_id: job.model_dump() for deck_id, job in self.jobs.items()}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        logger.debug(f"Saved {len(self.jobs)} deck jobs to {self.path}")

    def __contains__(self, deck_id: str) -> bool:
        return deck_id in self.jobs

    def mark_downloaded(self, deck_id: str, downloaded: bool = True) -> None:
        """Set the ``downloaded`` flag of a deck.

        Raises:
            KeyError: If the deck is not in the ledger.
        """
        self.jobs[deck_id].downloaded = downloaded

    def remove(self, deck_id: str) -> None:
        """Drop a deck from the ledger entirely."""
        self.jobs.pop(deck_id, None)

    def pending_downloads(self) -> Iterator[tuple[str, DeckJob]]:
        """Decks eligible for (re-)download, in ledger order."""
        # Copy, callers remove entries while iterating
        for deck_id, job in list(self.jobs.items()):
            if not job.downloaded:
                yield deck_id, job

    def downloaded_jobs(self) -> Iterator[tuple[str, DeckJob]]:
        """Decks whose archive has been downloaded, in ledger order."""
        for deck_id, job in list(self.jobs.items()):
            if job.downloaded:
                yield deck_id, job
