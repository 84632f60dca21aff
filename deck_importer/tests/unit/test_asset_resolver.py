"""Unit tests for AssetResolver."""

import pytest

from deck_importer.modules.importer.asset_resolver import AssetResolver
from deck_importer.modules.importer.context import ImportContext
from deck_importer.shared.errors import UnknownContentTypeError


@pytest.fixture
def resolver() -> AssetResolver:
    ids = iter(["idA", "idB", "idC"])
    tokens = iter(["token-1", "token-2", "token-3"])
    return AssetResolver("demo.appspot.com", id_factory=lambda: next(ids), token_factory=lambda: next(tokens))


class TestResolve:
    """Tests for asset URL resolution."""

    def test_first_resolution_queues_asset(self, resolver: AssetResolver, import_context: ImportContext):
        url = resolver.resolve(import_context, "/decks/1234/0", "cat.png")

        assert url == (
            "https://firebasestorage.googleapis.com/v0/b/demo.appspot.com/o/"
            "deck-assets%2F1234%2FidA?alt=media&token=token-1"
        )
        assert len(import_context.assets) == 1
        asset = import_context.assets[0]
        assert asset.source_path == "/decks/1234/0"
        assert asset.destination == "deck-assets/1234/idA"
        assert asset.content_type == "image/png"
        assert asset.token == "token-1"

    def test_same_path_is_cached(self, resolver: AssetResolver, import_context: ImportContext):
        first = resolver.resolve(import_context, "/decks/1234/0", "cat.png")
        second = resolver.resolve(import_context, "/decks/1234/0", "cat.png")

        assert first == second
        assert len(import_context.assets) == 1

    def test_distinct_paths_get_distinct_urls(self, resolver: AssetResolver, import_context: ImportContext):
        first = resolver.resolve(import_context, "/decks/1234/0", "cat.png")
        second = resolver.resolve(import_context, "/decks/1234/1", "dog.jpg")

        assert first != second
        assert [a.destination for a in import_context.assets] == ["deck-assets/1234/idA", "deck-assets/1234/idB"]
        assert import_context.assets[1].content_type == "image/jpeg"

    def test_cache_is_per_context(self, resolver: AssetResolver, import_context: ImportContext, tmp_path):
        other = ImportContext(deck_id="9999", deck_dir=tmp_path)

        first = resolver.resolve(import_context, "/same/0", "cat.png")
        second = resolver.resolve(other, "/same/0", "cat.png")

        assert first != second
        assert "deck-assets%2F9999%2FidB" in second
        assert len(import_context.assets) == len(other.assets) == 1

    def test_unknown_content_type(self, resolver: AssetResolver, import_context: ImportContext):
        with pytest.raises(UnknownContentTypeError) as exc_info:
            resolver.resolve(import_context, "/decks/1234/2", "notes.xyz123")

        assert exc_info.value.code == "UNKNOWN_CONTENT_TYPE"
        assert import_context.assets == []
        assert import_context.asset_urls == {}

    def test_default_factories(self, import_context: ImportContext):
        resolver = AssetResolver("demo.appspot.com")

        url = resolver.resolve(import_context, "/decks/1234/0", "cat.png")

        asset = import_context.assets[0]
        assert len(asset.destination.rsplit("/", 1)[-1]) == 20
        assert len(asset.token) == 36
        assert url.endswith(f"token={asset.token}")
