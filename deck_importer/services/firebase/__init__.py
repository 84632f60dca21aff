"""Firebase backends: Firestore documents and Storage objects."""

from .encoding import SERVER_TIMESTAMP, new_document_id
from .firestore import FirestoreClient
from .storage import StorageClient

__all__ = [
    "SERVER_TIMESTAMP",
    "new_document_id",
    "FirestoreClient",
    "StorageClient",
]
