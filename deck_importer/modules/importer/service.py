"""Deck import service.

Imports one unpacked deck: creates the deck document, renders every card,
partitions the cards into sections, uploads cards and media, then removes
the deck directory.
"""

import logging
import time
from contextlib import closing
from pathlib import Path

from deck_importer.core.config import Settings
from deck_importer.modules.ledger.repository import JobLedger
from deck_importer.services.firebase import FirestoreClient, StorageClient
from deck_importer.shared.context import set_deck_id
from deck_importer.shared.errors import AppError, ArchiveUnpackError, CardJoinError, EmptyCardSideError
from deck_importer.shared.logging import (
    log_card_skipped,
    log_deck_import_completed,
    log_deck_import_failed,
    log_deck_import_started,
)

from .archive import delete_deck, unpack_deck
from .asset_resolver import AssetResolver
from .collection_reader import CollectionReader, find_collection, load_media_map, open_collection
from .context import ImportContext
from .schemas import CardDocument, DeckDocument, DeckImportResult
from .sections import SectionPartitioner
from .template_rewriter import TemplateRewriter
from .uploader import BatchUploader

logger = logging.getLogger(__name__)


def normalize_tags(tags: str) -> list[str]:
    """Split a note's tag string into lowercase tags, dropping blanks and repeats."""
    cleaned = (tag.strip().lower() for tag in tags.split())
    return list(dict.fromkeys(tag for tag in cleaned if tag))


class DeckImportService:
    """Runs the import pipeline for one deck at a time.

    Stages: unpacking, extracting and rewriting cards, uploading, cleaning up.

    - An unpack failure removes the deck directory, rolls the ledger's
      ``downloaded`` flag back and raises ``ArchiveUnpackError``.
    - Any failure while extracting, rewriting or uploading cards removes the
      deck directory and aborts the deck.
    - Failures after unpacking are logged and reported in the result, never
      raised, so a caller looping over decks can carry on.

    Example:
        >>> service = DeckImportService.from_settings(settings, firestore, storage, ledger)
        >>> result = await service.import_deck("1234567", ["topic-1"])
    """

    def __init__(
        self,
        store: FirestoreClient,
        storage: StorageClient,
        ledger: JobLedger,
        *,
        downloads_path: Path,
        storage_bucket: str,
        account_id: str = "",
        max_cards_per_section: int = 100,
        card_chunk_size: int = 500,
        asset_chunk_size: int = 50,
    ) -> None:
        """Initialize the import service.

        Args:
            store: Firestore client receiving decks, sections and cards.
            storage: Storage client receiving the media assets.
            ledger: Job ledger, rolled back when unpacking fails.
            downloads_path: Parent directory of the deck directories.
            storage_bucket: Bucket the asset URLs point to.
            account_id: Account recorded as deck creator and asset owner.
            max_cards_per_section: Section capacity.
            card_chunk_size: Cards per Firestore commit.
            asset_chunk_size: Assets uploaded concurrently.
        """
        self.store = store
        self.ledger = ledger
        self.downloads_path = Path(downloads_path)
        self.account_id = account_id
        self.max_cards_per_section = max_cards_per_section
        self.rewriter = TemplateRewriter(AssetResolver(storage_bucket))
        self.uploader = BatchUploader(
            store,
            storage,
            card_chunk_size=card_chunk_size,
            asset_chunk_size=asset_chunk_size,
            owner=account_id,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: FirestoreClient,
        storage: StorageClient,
        ledger: JobLedger,
    ) -> "DeckImportService":
        """Build the service from the application settings."""
        return cls(
            store,
            storage,
            ledger,
            downloads_path=settings.importer.downloads_path,
            storage_bucket=settings.firebase.storage_bucket,
            account_id=settings.firebase.account_id,
            max_cards_per_section=settings.importer.max_cards_per_section,
            card_chunk_size=settings.importer.card_chunk_size,
            asset_chunk_size=settings.importer.asset_chunk_size,
        )

    def deck_dir(self, deck_id: str) -> Path:
        """Directory the deck archive is downloaded and unpacked into."""
        return self.downloads_path / deck_id

    async def import_deck(self, deck_id: str, topics: list[str]) -> DeckImportResult:
        """Import one deck.

        Args:
            deck_id: Deck to import.
            topics: Topic ids stored on the deck document.

        Returns:
            Result of the import; ``succeeded`` is False if it was aborted.

        Raises:
            ArchiveUnpackError: If the archive cannot be unpacked.
        """
        set_deck_id(deck_id)
        try:
            return await self._run(deck_id, topics)
        finally:
            set_deck_id("")

    async def _run(self, deck_id: str, topics: list[str]) -> DeckImportResult:
        log_deck_import_started(deck_id, topics)

        started = time.monotonic()
        deck_dir = self.deck_dir(deck_id)
        result = DeckImportResult(deck_id=deck_id)

        self._unpack(deck_id, deck_dir)

        stage = "extracting"
        try:
            context = ImportContext(deck_id=deck_id, deck_dir=deck_dir)

            try:
                await self._import_cards(context, topics, result)
            except Exception:
                logger.info("Deleting deck path...")
                delete_deck(deck_dir)
                raise

            stage = "uploading"
            result.assets_uploaded, result.assets_failed = await self.uploader.upload_assets(context.assets)

            stage = "cleaning_up"
            logger.info("Deleting deck path...")
            delete_deck(deck_dir)
        except Exception as e:
            logger.exception(f"Import of deck {deck_id} failed while {stage}")
            if isinstance(e, AppError):
                report = e.to_report()
                result.error = report.message
                log_deck_import_failed(
                    deck_id, result.error, error_type=report.error, stage=stage, details=report.details
                )
            else:
                result.error = str(e)
                log_deck_import_failed(deck_id, result.error, error_type=type(e).__name__, stage=stage)
            return result

        result.succeeded = True
        log_deck_import_completed(
            deck_id,
            result.cards_uploaded,
            result.assets_uploaded,
            int((time.monotonic() - started) * 1000),
            cards_skipped=result.cards_skipped,
            assets_failed=result.assets_failed,
        )
        return result

    def _unpack(self, deck_id: str, deck_dir: Path) -> None:
        logger.info("Unzipping deck...")

        try:
            unpack_deck(deck_dir)
        except Exception as e:
            logger.error(f"Unzipping deck {deck_id} failed, deleting deck path")
            delete_deck(deck_dir)

            if deck_id in self.ledger:
                self.ledger.mark_downloaded(deck_id, False)
                self.ledger.save()

            if isinstance(e, ArchiveUnpackError):
                raise
            raise ArchiveUnpackError(str(e), details={"path": str(deck_dir)}) from e

    async def _import_cards(
        self,
        context: ImportContext,
        topics: list[str],
        result: DeckImportResult,
    ) -> None:
        deck_id = context.deck_id
        context.media_map = load_media_map(context.deck_dir)

        with closing(open_collection(find_collection(context.deck_dir))) as conn:
            reader = CollectionReader(conn)

            logger.info("Importing deck data...")
            deck = DeckDocument(topics=topics, name=reader.read_deck_name(), creator=self.account_id)
            await self.store.create_document(f"decks/{deck_id}", deck.to_firestore())

            partitioner = SectionPartitioner(self.store, deck_id, self.max_cards_per_section)
            cards: list[CardDocument] = []

            for item in reader.iter_card_inputs():
                if isinstance(item, CardJoinError):
                    result.cards_skipped += 1
                    log_card_skipped(item.details.get("note_id", 0), item.message, error_type=item.code)
                    continue

                try:
                    front, back = self.rewriter.render_card(item, context)
                except EmptyCardSideError as e:
                    result.cards_skipped += 1
                    log_card_skipped(item.note.id, e.message, error_type=e.code)
                    continue

                section_id = await partitioner.assign()
                cards.append(
                    CardDocument(
                        section=section_id,
                        front=front,
                        back=back,
                        tags=normalize_tags(item.note.tags),
                    )
                )
                logger.debug(f"Card {len(cards)} added to queue with section #{len(partitioner.sections)}")

        result.cards_queued = len(cards)
        result.sections_created = len(partitioner.sections)
        logger.info(f"Queued {len(cards)} cards in {len(partitioner.sections)} sections")

        def record_progress(uploaded: int) -> None:
            result.cards_uploaded = uploaded

        await self.uploader.upload_cards(deck_id, cards, on_committed=record_progress)
