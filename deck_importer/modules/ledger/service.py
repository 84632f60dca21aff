"""Sequential drivers running downloads and imports over the whole ledger."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from deck_importer.modules.importer.schemas import DeckImportResult
from deck_importer.shared.errors import ArchiveUnpackError, LedgerEligibilityError

from .downloader import DeckDownloader
from .repository import JobLedger

if TYPE_CHECKING:
    from deck_importer.modules.importer.service import DeckImportService

logger = logging.getLogger(__name__)


async def download_decks(ledger: JobLedger, downloader: DeckDownloader) -> int:
    """Download every deck not yet downloaded, saving the ledger after each.

    Decks that are not eligible for download are removed from the ledger.
    Any other download error stops the run; the ledger already records
    everything downloaded before it.

    Returns:
        Number of decks downloaded.
    """
    downloaded = 0

    for deck_id, job in ledger.pending_downloads():
        try:
            await downloader.download(deck_id)
        except LedgerEligibilityError as e:
            logger.warning(f"Removing deck {deck_id} from ledger: {e.message}")
            ledger.remove(deck_id)
            ledger.save()
            continue

        job.downloaded = True
        ledger.save()

        downloaded += 1
        logger.info(f"Downloaded deck with ID {deck_id} ({downloaded})")

    return downloaded


async def import_decks(ledger: JobLedger, importer: DeckImportService) -> list[DeckImportResult]:
    """Import every downloaded deck, one at a time.

    A deck failing to import never stops the loop. Decks whose directory is
    gone were cleaned up by an earlier import and are skipped.

    Returns:
        Results of the decks that were attempted.
    """
    results: list[DeckImportResult] = []

    for deck_id, job in ledger.downloaded_jobs():
        if not importer.deck_dir(deck_id).exists():
            logger.info(f"Skipping deck {deck_id}, nothing to import")
            continue

        try:
            result = await importer.import_deck(deck_id, job.topics)
        except ArchiveUnpackError as e:
            logger.error(f"Unable to unpack deck {deck_id}: {e.message}")
            results.append(DeckImportResult(deck_id=deck_id, error=e.message))
            continue

        results.append(result)

    succeeded = sum(1 for result in results if result.succeeded)
    logger.info(f"Imported {succeeded}/{len(results)} decks")
    return results
