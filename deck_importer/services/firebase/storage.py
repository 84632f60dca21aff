"""Cloud Storage upload client for Firebase Storage buckets."""

import asyncio
import json
import logging
import uuid
from pathlib import Path
from typing import Any

import httpx

from deck_importer.shared.errors import safe

logger = logging.getLogger(__name__)

STORAGE_UPLOAD_URL = "https://storage.googleapis.com/upload/storage/v1/b/{bucket}/o"


class StorageClient:
    """Client uploading local files to a Cloud Storage bucket.

    Example:
        >>> async with StorageClient("my-project.appspot.com", token) as storage:
        ...     await storage.upload(path, destination="deck-assets/1/abc", content_type="image/png")
    """

    def __init__(
        self,
        bucket: str,
        access_token: str = "",
        *,
        timeout: float = 120.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the storage client.

        Args:
            bucket: Bucket name, e.g. ``my-project.appspot.com``.
            access_token: OAuth2 bearer token.
            timeout: Request timeout in seconds.
            client: Preconfigured HTTP client, mostly for tests.
        """
        self.bucket = bucket
        self.access_token = access_token
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> "StorageClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()

    async def upload(
        self,
        local_path: str | Path,
        *,
        destination: str,
        content_type: str,
        public: bool = True,
        custom_metadata: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Upload a file as a single multipart request.

        Args:
            local_path: File to upload.
            destination: Object name inside the bucket.
            content_type: MIME type stored with the object.
            public: Grant public read access.
            custom_metadata: User metadata stored with the object.

        Returns:
            The created object resource.

        Raises:
            RemoteWriteError: If the upload is rejected.
            OSError: If the local file cannot be read.
        """
        content = await asyncio.to_thread(Path(local_path).read_bytes)
        resource = await self._send(destination, content_type, content, public, custom_metadata or {})
        logger.debug(f"Uploaded {local_path} to gs://{self.bucket}/{destination}")
        return resource

    @safe(operation="upload")
    async def _send(
        self,
        destination: str,
        content_type: str,
        content: bytes,
        public: bool,
        custom_metadata: dict[str, str],
    ) -> dict[str, Any]:
        metadata = {
            "name": destination,
            "contentType": content_type,
            "metadata": custom_metadata,
        }

        boundary = uuid.uuid4().hex
        body = b"".join(
            [
                f"--{boundary}\r\n".encode(),
                b"Content-Type: application/json; charset=UTF-8\r\n\r\n",
                json.dumps(metadata).encode(),
                f"\r\n--{boundary}\r\n".encode(),
                f"Content-Type: {content_type}\r\n\r\n".encode(),
                content,
                f"\r\n--{boundary}--\r\n".encode(),
            ]
        )

        params = {"uploadType": "multipart"}
        if public:
            params["predefinedAcl"] = "publicRead"

        headers = {"Content-Type": f"multipart/related; boundary={boundary}"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"

        response = await self.client.post(
            STORAGE_UPLOAD_URL.format(bucket=self.bucket),
            params=params,
            content=body,
            headers=headers,
        )
        response.raise_for_status()
        return response.json()
