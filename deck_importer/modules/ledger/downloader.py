"""Download of shared deck archives."""

import logging
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, urlsplit

import httpx

from deck_importer.modules.importer.archive import ARCHIVE_FILENAME
from deck_importer.shared.errors import AppError, MissingDownloadKeyError

logger = logging.getLogger(__name__)

DOWNLOAD_KEY_PARAMETER = "k"


class DownloadError(AppError):
    """Deck archive could not be downloaded."""


class DeckDownloader:
    """Downloads shared deck archives into per-deck directories.

    The download URL answers with a redirect to a signed archive URL; decks
    that are no longer shared redirect somewhere without the signing key.
    """

    def __init__(
        self,
        downloads_path: Path,
        url_template: str,
        *,
        timeout: float = 120.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the downloader.

        Args:
            downloads_path: Parent directory of the deck directories.
            url_template: Download URL with a ``{deck_id}`` placeholder.
            timeout: Request timeout in seconds.
            client: Preconfigured HTTP client, mostly for tests.
        """
        self.downloads_path = Path(downloads_path)
        self.url_template = url_template
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> "DeckDownloader":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()

    async def download(self, deck_id: str) -> Path:
        """Download a deck archive to ``{downloads_path}/{deck_id}/main.apkg``.

        Args:
            deck_id: Shared deck id.

        Returns:
            Path of the downloaded archive.

        Raises:
            MissingDownloadKeyError: If the signed URL has no download key.
            DownloadError: If a request fails.
        """
        url = self.url_template.format(deck_id=deck_id)

        try:
            response = await self.client.get(url, follow_redirects=False)
        except httpx.HTTPError as e:
            raise DownloadError(f"Download request failed: {e}", details={"path": url}) from e

        if not response.has_redirect_location:
            raise MissingDownloadKeyError(details={"path": url, "status": response.status_code})

        archive_url = response.url.join(response.headers["location"])
        if DOWNLOAD_KEY_PARAMETER not in parse_qs(urlsplit(str(archive_url)).query):
            raise MissingDownloadKeyError(details={"path": str(archive_url)})

        deck_dir = self.downloads_path / deck_id
        deck_dir.mkdir(parents=True, exist_ok=True)
        archive_path = deck_dir / ARCHIVE_FILENAME

        try:
            async with self.client.stream("GET", archive_url, follow_redirects=True) as archive:
                archive.raise_for_status()
                with open(archive_path, "wb") as f:
                    async for chunk in archive.aiter_bytes():
                        f.write(chunk)
        except httpx.HTTPError as e:
            archive_path.unlink(missing_ok=True)
            raise DownloadError(f"Archive download failed: {e}", details={"path": str(archive_url)}) from e

        logger.debug(f"Downloaded deck {deck_id} to {archive_path}")
        return archive_path
