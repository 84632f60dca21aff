"""Deck importer - Event Logger.

Structured event logging for deck import milestones.
"""

from typing import Any

from loguru import logger


def log_deck_import_started(deck_id: str, topics: list[str]) -> None:
    """Log the start of a deck import.

    Args:
        deck_id: Deck being imported
        topics: Topic ids attached to the deck
    """
    logger.info(
        "Deck import started",
        event="deck_import.started",
        deck_id=deck_id,
        topics=topics,
    )


def log_deck_import_completed(
    deck_id: str,
    cards_uploaded: int,
    assets_uploaded: int,
    duration_ms: int,
    *,
    cards_skipped: int = 0,
    assets_failed: int = 0,
) -> None:
    """Log the successful completion of a deck import.

    Args:
        deck_id: Deck that was imported
        cards_uploaded: Number of card documents committed
        assets_uploaded: Number of media assets uploaded
        duration_ms: Total duration in milliseconds
        cards_skipped: Cards rejected while building
        assets_failed: Assets whose upload failed
    """
    logger.info(
        "Deck import completed",
        event="deck_import.completed",
        deck_id=deck_id,
        cards_uploaded=cards_uploaded,
        cards_skipped=cards_skipped,
        assets_uploaded=assets_uploaded,
        assets_failed=assets_failed,
        duration_ms=duration_ms,
    )


def log_deck_import_failed(
    deck_id: str,
    error: str,
    *,
    error_type: str | None = None,
    stage: str | None = None,
    details: dict[str, Any] | None = None,
) -> None:
    """Log a deck import failure.

    Args:
        deck_id: Deck whose import failed
        error: Error message describing the failure
        error_type: Error code, or the exception class for unexpected errors
        stage: Pipeline stage that failed
        details: Structured details of an importer error
    """
    logger.error(
        "Deck import failed",
        event="deck_import.failed",
        deck_id=deck_id,
        error=error,
        error_type=error_type,
        stage=stage,
        details=details or {},
    )


def log_card_skipped(note_id: int, reason: str, *, error_type: str | None = None) -> None:
    """Log a card rejected while building.

    Args:
        note_id: Note the card was built from
        reason: Why the card was rejected
        error_type: Optional error classification
    """
    logger.warning(
        "Card skipped",
        event="card.skipped",
        note_id=note_id,
        reason=reason,
        error_type=error_type,
    )


def log_chunk_uploaded(kind: str, index: int, total: int, size: int) -> None:
    """Log progress of a chunked upload.

    Args:
        kind: "card" or "asset"
        index: 1-based chunk number
        total: Number of chunks
        size: Number of items in the chunk
    """
    logger.info(
        f"Uploaded {kind} chunk {index}/{total} ({size} items)",
        event=f"{kind}_chunk.uploaded",
        chunk=index,
        chunks=total,
        size=size,
    )


def log_asset_upload_failed(source_path: str, destination: str, error: str) -> None:
    """Log a failed asset upload.

    Args:
        source_path: Local file that failed to upload
        destination: Storage object name
        error: Error message
    """
    logger.error(
        "Error uploading asset",
        event="asset.upload_failed",
        source_path=source_path,
        destination=destination,
        error=error,
    )
