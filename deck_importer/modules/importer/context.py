"""Per-deck import state."""

from dataclasses import dataclass, field
from pathlib import Path

from .schemas import Asset


@dataclass
class ImportContext:
    """State owned by a single deck import run.

    A fresh context is created for every deck and passed explicitly to the
    rewriter and the asset resolver, so nothing leaks between decks.

    Attributes:
        deck_id: Deck being imported.
        deck_dir: Directory the archive was unpacked into.
        media_map: Asset filename -> on-disk filename inside ``deck_dir``.
        asset_urls: Source path -> public URL for assets already resolved.
        assets: Assets queued for upload, in resolution order.
    """

    deck_id: str
    deck_dir: Path
    media_map: dict[str, str] = field(default_factory=dict)
    asset_urls: dict[str, str] = field(default_factory=dict)
    assets: list[Asset] = field(default_factory=list)
