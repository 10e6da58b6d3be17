"""
Storage module.

Document store abstraction and the in-memory local backend.
"""

from src.storage.document_store import (
    DocumentSnapshot,
    DocumentStore,
    DocumentStoreError,
    InMemoryDocumentStore,
    PermissionDeniedError,
)

__all__ = [
    "DocumentSnapshot",
    "DocumentStore",
    "DocumentStoreError",
    "InMemoryDocumentStore",
    "PermissionDeniedError",
]
