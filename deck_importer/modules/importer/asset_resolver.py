"""Resolution of template media references to public Storage URLs."""

import logging
import mimetypes
import uuid
from collections.abc import Callable
from urllib.parse import quote

from deck_importer.services.firebase import new_document_id
from deck_importer.shared.errors import UnknownContentTypeError

from .context import ImportContext
from .schemas import Asset

logger = logging.getLogger(__name__)

STORAGE_DOWNLOAD_URL = "https://firebasestorage.googleapis.com/v0/b/{bucket}/o/{name}?alt=media&token={token}"


class AssetResolver:
    """Maps asset source paths to download URLs, queuing each path once per run.

    The URL embeds a random download token, so it is known before the file
    is uploaded; the upload later stores the same token in the object
    metadata.
    """

    def __init__(
        self,
        storage_bucket: str,
        id_factory: Callable[[], str] = new_document_id,
        token_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ) -> None:
        """Initialize the resolver.

        Args:
            storage_bucket: Bucket the assets are uploaded to.
            id_factory: Allocates the object id for a new asset.
            token_factory: Generates download tokens.
        """
        self.storage_bucket = storage_bucket
        self._new_id = id_factory
        self._new_token = token_factory

    def resolve(self, context: ImportContext, source_path: str, name: str) -> str:
        """Get the public URL for an asset, queuing it for upload on first sight.

        Args:
            context: Import run owning the cache and the upload queue.
            source_path: Full path of the file on disk (the cache key).
            name: Filename as referenced by the template, used for the content type.

        Returns:
            Download URL of the asset.

        Raises:
            UnknownContentTypeError: If no content type matches ``name``.
        """
        cached = context.asset_urls.get(source_path)
        if cached is not None:
            return cached

        content_type, _ = mimetypes.guess_type(name, strict=False)
        if content_type is None:
            raise UnknownContentTypeError(details={"name": name, "path": source_path})

        token = self._new_token()
        asset_id = self._new_id()
        destination = f"deck-assets/{context.deck_id}/{asset_id}"

        context.assets.append(
            Asset(
                source_path=source_path,
                destination=destination,
                content_type=content_type,
                token=token,
            )
        )

        url = STORAGE_DOWNLOAD_URL.format(
            bucket=self.storage_bucket,
            name=quote(destination, safe=""),
            token=token,
        )
        context.asset_urls[source_path] = url

        logger.debug(f"Queued asset {name} as {destination}")
        return url
