"""Unit tests for DeckDownloader.

HTTP traffic is served by ``httpx.MockTransport``.
"""

from pathlib import Path

import httpx
import pytest

from deck_importer.modules.ledger import DeckDownloader, DownloadError
from deck_importer.shared.errors import LedgerEligibilityError, MissingDownloadKeyError

URL_TEMPLATE = "https://decks.example.com/shared/downloadDeck/{deck_id}"
ARCHIVE_URL = "https://dl.example.com/download?k=signed-key&id=1234"


def make_downloader(tmp_path: Path, handler) -> DeckDownloader:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return DeckDownloader(tmp_path / "downloads", URL_TEMPLATE, client=client)


@pytest.mark.asyncio
class TestDownload:
    """Tests for downloading one deck archive."""

    async def test_follows_signed_redirect(self, tmp_path: Path):
        requests: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(str(request.url))
            if request.url.host == "decks.example.com":
                return httpx.Response(302, headers={"location": ARCHIVE_URL})
            return httpx.Response(200, content=b"PK\x03\x04archive")

        async with make_downloader(tmp_path, handler) as downloader:
            archive_path = await downloader.download("1234")

        assert archive_path == tmp_path / "downloads" / "1234" / "main.apkg"
        assert archive_path.read_bytes() == b"PK\x03\x04archive"
        assert requests == ["https://decks.example.com/shared/downloadDeck/1234", ARCHIVE_URL]

    async def test_redirect_without_key(self, tmp_path: Path):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(302, headers={"location": "https://dl.example.com/download?id=1234"})

        async with make_downloader(tmp_path, handler) as downloader:
            with pytest.raises(MissingDownloadKeyError) as exc_info:
                await downloader.download("1234")

        assert isinstance(exc_info.value, LedgerEligibilityError)
        assert not (tmp_path / "downloads" / "1234" / "main.apkg").exists()

    async def test_no_redirect(self, tmp_path: Path):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>Deck not found</html>")

        async with make_downloader(tmp_path, handler) as downloader:
            with pytest.raises(MissingDownloadKeyError) as exc_info:
                await downloader.download("1234")

        assert exc_info.value.details["status"] == 200

    async def test_archive_error_removes_partial_file(self, tmp_path: Path):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "decks.example.com":
                return httpx.Response(302, headers={"location": ARCHIVE_URL})
            return httpx.Response(403)

        async with make_downloader(tmp_path, handler) as downloader:
            with pytest.raises(DownloadError):
                await downloader.download("1234")

        assert not (tmp_path / "downloads" / "1234" / "main.apkg").exists()

    async def test_connection_error(self, tmp_path: Path):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        async with make_downloader(tmp_path, handler) as downloader:
            with pytest.raises(DownloadError) as exc_info:
                await downloader.download("1234")

        assert exc_info.value.code == "DOWNLOAD"
