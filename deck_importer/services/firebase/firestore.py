"""Firestore REST client.

Minimal document store contract used by the importer: create a single
document, atomically create a batch of documents and query a collection.
"""

import logging
from typing import Any

import httpx

from deck_importer.core.config import FIRESTORE_MAX_BATCH_WRITES
from deck_importer.shared.errors import RemoteWriteError, safe

from .encoding import decode_document, encode_document, encode_value, new_document_id

logger = logging.getLogger(__name__)

FIRESTORE_API_URL = "https://firestore.googleapis.com/v1"


class FirestoreClient:
    """Client for the Cloud Firestore REST API.

    Documents are addressed by slash separated paths relative to the
    database root, e.g. ``decks/123/cards/abc``.

    Example:
        >>> async with FirestoreClient("my-project", token) as firestore:
        ...     await firestore.create_document("decks/123", {"name": "Spanish"})
    """

    def __init__(
        self,
        project_id: str,
        access_token: str = "",
        *,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the Firestore client.

        Args:
            project_id: Firebase project id.
            access_token: OAuth2 bearer token.
            timeout: Request timeout in seconds.
            client: Preconfigured HTTP client, mostly for tests.
        """
        self.database = f"projects/{project_id}/databases/(default)"
        self.access_token = access_token
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> "FirestoreClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()

    @staticmethod
    def new_document_id() -> str:
        """Allocate an id for a document that does not exist yet."""
        return new_document_id()

    def document_name(self, path: str) -> str:
        """Full resource name of the document at ``path``."""
        return f"{self.database}/documents/{path.strip('/')}"

    def _get_headers(self) -> dict[str, str]:
        """Get request headers including authentication."""
        headers = {"Content-Type": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    async def _post(self, url: str, body: dict[str, Any]) -> Any:
        response = await self.client.post(url, json=body, headers=self._get_headers())
        response.raise_for_status()
        return response.json()

    def _create_write(self, path: str, data: dict[str, Any]) -> dict[str, Any]:
        fields, transforms = encode_document(data)
        write: dict[str, Any] = {
            "update": {"name": self.document_name(path), "fields": fields},
            "currentDocument": {"exists": False},
        }
        if transforms:
            write["updateTransforms"] = transforms
        return write

    @safe
    async def create_document(self, path: str, data: dict[str, Any]) -> None:
        """Create a document, failing if it already exists.

        Args:
            path: Document path relative to the database root.
            data: Document fields; ``SERVER_TIMESTAMP`` values are set by the server.

        Raises:
            RemoteWriteError: If the commit is rejected.
        """
        await self._post(
            f"{FIRESTORE_API_URL}/{self.database}/documents:commit",
            {"writes": [self._create_write(path, data)]},
        )
        logger.debug(f"Created document {path}")

    @safe
    async def batch_create(self, documents: list[tuple[str, dict[str, Any]]]) -> None:
        """Atomically create several documents in one commit.

        Args:
            documents: ``(path, data)`` pairs.

        Raises:
            RemoteWriteError: If the batch is too large or the commit is rejected.
        """
        if len(documents) > FIRESTORE_MAX_BATCH_WRITES:
            raise RemoteWriteError(
                f"A batch holds at most {FIRESTORE_MAX_BATCH_WRITES} writes, got {len(documents)}",
                details={"operation": "batch_create"},
            )
        if not documents:
            return

        await self._post(
            f"{FIRESTORE_API_URL}/{self.database}/documents:commit",
            {"writes": [self._create_write(path, data) for path, data in documents]},
        )
        logger.debug(f"Committed batch of {len(documents)} documents")

    @safe
    async def query_collection(
        self,
        collection_path: str,
        *,
        where: tuple[str, str, Any] | None = None,
        order_by: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Query the documents of a collection.

        Args:
            collection_path: Collection path, e.g. ``decks/123/sections``.
            where: Optional ``(field, operator, value)`` filter using Firestore
                operator names such as ``EQUAL`` or ``GREATER_THAN``.
            order_by: Optional field to sort ascending by.
            limit: Maximum number of documents.

        Returns:
            Decoded documents, each with an ``id`` key.
        """
        parent, _, collection_id = collection_path.strip("/").rpartition("/")
        parent_name = self.document_name(parent) if parent else f"{self.database}/documents"

        query: dict[str, Any] = {"from": [{"collectionId": collection_id}]}
        if where is not None:
            field, op, value = where
            query["where"] = {
                "fieldFilter": {
                    "field": {"fieldPath": field},
                    "op": op,
                    "value": encode_value(value),
                }
            }
        if order_by is not None:
            query["orderBy"] = [{"field": {"fieldPath": order_by}, "direction": "ASCENDING"}]
        if limit is not None:
            query["limit"] = limit

        results = await self._post(
            f"{FIRESTORE_API_URL}/{parent_name}:runQuery",
            {"structuredQuery": query},
        )
        return [decode_document(item["document"]) for item in results if "document" in item]
