"""Job ledger, archive downloads and the multi-deck drivers."""

from .downloader import DeckDownloader, DownloadError
from .repository import JobLedger
from .schemas import DeckJob
from .service import download_decks, import_decks

__all__ = [
    "DeckDownloader",
    "DownloadError",
    "DeckJob",
    "JobLedger",
    "download_decks",
    "import_decks",
]
