"""Chunked upload of card documents and media assets."""

import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import TypeVar

from deck_importer.core.config import FIRESTORE_MAX_BATCH_WRITES
from deck_importer.services.firebase import FirestoreClient, StorageClient
from deck_importer.shared.logging import log_asset_upload_failed, log_chunk_uploaded

from .schemas import Asset, CardDocument

logger = logging.getLogger(__name__)

T = TypeVar("T")


def chunked(items: Sequence[T], size: int) -> list[Sequence[T]]:
    """Split ``items`` into consecutive chunks of at most ``size``."""
    if size < 1:
        raise ValueError("Chunk size must be at least 1")
    return [items[i : i + size] for i in range(0, len(items), size)]


class BatchUploader:
    """Uploads a deck's cards and assets in bounded chunks.

    Card chunks are committed one after another and the first failure stops
    the upload. Assets inside a chunk are uploaded concurrently and each
    failure only costs that asset.
    """

    def __init__(
        self,
        store: FirestoreClient,
        storage: StorageClient,
        *,
        card_chunk_size: int = FIRESTORE_MAX_BATCH_WRITES,
        asset_chunk_size: int = 50,
        owner: str = "",
    ) -> None:
        """Initialize the uploader.

        Args:
            store: Document store receiving the cards.
            storage: Blob store receiving the assets.
            card_chunk_size: Cards per atomic commit.
            asset_chunk_size: Assets uploaded concurrently.
            owner: Account recorded in the asset metadata.
        """
        self.store = store
        self.storage = storage
        self.card_chunk_size = min(card_chunk_size, FIRESTORE_MAX_BATCH_WRITES)
        self.asset_chunk_size = asset_chunk_size
        self.owner = owner

    async def upload_cards(
        self,
        deck_id: str,
        cards: list[CardDocument],
        on_committed: Callable[[int], None] | None = None,
    ) -> int:
        """Commit card documents, one atomic batch per chunk.

        Args:
            deck_id: Deck the cards belong to.
            cards: Cards in emission order.
            on_committed: Called with the running total after each committed chunk.

        Returns:
            Number of cards uploaded.

        Raises:
            RemoteWriteError: On the first chunk that fails; later chunks are not attempted.
        """
        logger.info(f"Uploading {len(cards)} cards...")

        chunks = chunked(cards, self.card_chunk_size)
        uploaded = 0

        for index, chunk in enumerate(chunks, 1):
            documents = [
                (f"decks/{deck_id}/cards/{self.store.new_document_id()}", card.to_firestore())
                for card in chunk
            ]

            try:
                await self.store.batch_create(documents)
            except Exception:
                logger.error(f"Card chunk {index}/{len(chunks)} failed after {uploaded} cards")
                raise

            uploaded += len(chunk)
            if on_committed is not None:
                on_committed(uploaded)
            log_chunk_uploaded("card", index, len(chunks), len(chunk))

        logger.info(f"Uploaded {uploaded} cards")
        return uploaded

    async def upload_assets(self, assets: list[Asset]) -> tuple[int, int]:
        """Upload assets chunk by chunk, concurrently inside a chunk.

        Args:
            assets: Assets queued while rendering the deck.

        Returns:
            Tuple of (uploaded, failed).
        """
        logger.info(f"Uploading {len(assets)} assets...")

        chunks = chunked(assets, self.asset_chunk_size)
        uploaded = failed = 0

        for index, chunk in enumerate(chunks, 1):
            results = await asyncio.gather(*(self._upload_asset(asset) for asset in chunk))
            succeeded = sum(results)
            uploaded += succeeded
            failed += len(chunk) - succeeded
            log_chunk_uploaded("asset", index, len(chunks), len(chunk))

        logger.info(f"Uploaded {uploaded} assets ({failed} failed)")
        return uploaded, failed

    async def _upload_asset(self, asset: Asset) -> bool:
        try:
            await self.storage.upload(
                asset.source_path,
                destination=asset.destination,
                content_type=asset.content_type,
                public=True,
                custom_metadata={
                    "owner": self.owner,
                    "firebaseStorageDownloadTokens": asset.token,
                },
            )
        except Exception as e:
            log_asset_upload_failed(asset.source_path, asset.destination, str(e))
            return False
        return True
