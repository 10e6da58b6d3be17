"""
Document store module.

Collection/document storage for user profiles, quotation requests and
shipments, with per-document change subscriptions.

Subscribers receive the current snapshot immediately, then one snapshot per
write to that document, in write order. Notifications are delivered on the
writer's thread under a delivery lock that serialises writes with their
notifications; the data lock is released before callbacks run.
"""

import copy
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable

logger = logging.getLogger(__name__)


class DocumentStoreError(Exception):
    """Raised when a document read or write fails."""

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class PermissionDeniedError(DocumentStoreError):
    """Raised when the caller may not read or write a document."""


@dataclass(frozen=True)
class DocumentSnapshot:
    """
    Point-in-time view of a single document.

    Attributes:
        doc_id: Document id within its collection.
        exists: False when no document is stored at this id.
        data: Document fields (empty when the document does not exist).
    """

    doc_id: str
    exists: bool
    data: dict[str, Any] = field(default_factory=dict)


SnapshotCallback = Callable[[DocumentSnapshot], None]
ErrorCallback = Callable[[Exception], None]
Unsubscribe = Callable[[], None]


class DocumentStore(ABC):
    """Abstract document database."""

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> DocumentSnapshot:
        """Read a single document."""

    @abstractmethod
    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Create or replace a document."""

    @abstractmethod
    def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Merge fields into an existing document."""

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        """Delete a document if it exists."""

    @abstractmethod
    def add(self, collection: str, data: dict[str, Any]) -> str:
        """Create a document with a generated id and return the id."""

    @abstractmethod
    def query(
        self,
        collection: str,
        field_name: str,
        value: Any,
        limit: int | None = None,
    ) -> list[DocumentSnapshot]:
        """Return documents whose field equals value."""

    @abstractmethod
    def list_documents(self, collection: str) -> list[DocumentSnapshot]:
        """Return every readable document in a collection."""

    @abstractmethod
    def subscribe(
        self,
        collection: str,
        doc_id: str,
        on_data: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Unsubscribe:
        """
        Watch a single document.

        Returns:
            Callable that stops delivery to these callbacks.
        """


@dataclass
class _Subscription:
    on_data: SnapshotCallback
    on_error: ErrorCallback
    active: bool = True


class InMemoryDocumentStore(DocumentStore):
    """
    Thread-safe in-process document store.

    Used as the local backend for development and tests. Reads of denied
    paths raise PermissionDeniedError; subscriptions to denied paths report
    the error through on_error.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._subscriptions: dict[tuple[str, str], list[_Subscription]] = {}
        self._denied: set[tuple[str, str]] = set()
        self._lock = threading.RLock()
        # Always taken before _lock; held while callbacks run
        self._delivery_lock = threading.RLock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, collection: str, doc_id: str) -> DocumentSnapshot:
        with self._lock:
            self._check_access(collection, doc_id)
            return self._snapshot(collection, doc_id)

    def query(
        self,
        collection: str,
        field_name: str,
        value: Any,
        limit: int | None = None,
    ) -> list[DocumentSnapshot]:
        with self._lock:
            matches = []
            for doc_id, data in self._collections.get(collection, {}).items():
                if (collection, doc_id) in self._denied:
                    continue
                if data.get(field_name) == value:
                    matches.append(DocumentSnapshot(doc_id, True, copy.deepcopy(data)))
                    if limit is not None and len(matches) >= limit:
                        break
            return matches

    def list_documents(self, collection: str) -> list[DocumentSnapshot]:
        with self._lock:
            return [
                DocumentSnapshot(doc_id, True, copy.deepcopy(data))
                for doc_id, data in self._collections.get(collection, {}).items()
                if (collection, doc_id) not in self._denied
            ]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        with self._delivery_lock:
            with self._lock:
                self._check_access(collection, doc_id)
                self._collections.setdefault(collection, {})[doc_id] = copy.deepcopy(data)
                snapshot = self._snapshot(collection, doc_id)
                subscribers = self._active_subscribers(collection, doc_id)
            logger.debug(f"Set document {collection}/{doc_id}")
            self._notify(subscribers, snapshot)

    def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        with self._delivery_lock:
            with self._lock:
                self._check_access(collection, doc_id)
                existing = self._collections.get(collection, {}).get(doc_id)
                if existing is None:
                    raise DocumentStoreError(
                        f"Document not found: {collection}/{doc_id}", path=f"{collection}/{doc_id}"
                    )
                existing.update(copy.deepcopy(data))
                snapshot = self._snapshot(collection, doc_id)
                subscribers = self._active_subscribers(collection, doc_id)
            self._notify(subscribers, snapshot)

    def delete(self, collection: str, doc_id: str) -> None:
        with self._delivery_lock:
            with self._lock:
                self._check_access(collection, doc_id)
                removed = self._collections.get(collection, {}).pop(doc_id, None)
                if removed is None:
                    return
                snapshot = self._snapshot(collection, doc_id)
                subscribers = self._active_subscribers(collection, doc_id)
            logger.debug(f"Deleted document {collection}/{doc_id}")
            self._notify(subscribers, snapshot)

    def add(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex[:20]
        self.set(collection, doc_id, data)
        return doc_id

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(
        self,
        collection: str,
        doc_id: str,
        on_data: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Unsubscribe:
        subscription = _Subscription(on_data=on_data, on_error=on_error)
        key = (collection, doc_id)

        with self._delivery_lock:
            with self._lock:
                denied = key in self._denied
                if not denied:
                    self._subscriptions.setdefault(key, []).append(subscription)
                    snapshot = self._snapshot(collection, doc_id)

            if denied:
                subscription.active = False
                on_error(
                    PermissionDeniedError(
                        f"Missing or insufficient permissions: {collection}/{doc_id}",
                        path=f"{collection}/{doc_id}",
                    )
                )
                return lambda: None

            on_data(snapshot)

        def unsubscribe() -> None:
            with self._lock:
                subscription.active = False
                subscribers = self._subscriptions.get(key, [])
                if subscription in subscribers:
                    subscribers.remove(subscription)

        return unsubscribe

    def subscriber_count(self, collection: str, doc_id: str) -> int:
        with self._lock:
            return len(self._active_subscribers(collection, doc_id))

    # ------------------------------------------------------------------
    # Failure simulation
    # ------------------------------------------------------------------

    def deny(self, collection: str, doc_id: str) -> None:
        """Reject future reads, writes and subscriptions for a document."""
        with self._lock:
            self._denied.add((collection, doc_id))

    def allow(self, collection: str, doc_id: str) -> None:
        with self._lock:
            self._denied.discard((collection, doc_id))

    def fail_subscribers(self, collection: str, doc_id: str, error: Exception) -> None:
        """Report an error to every live subscription on a document."""
        with self._delivery_lock:
            with self._lock:
                subscribers = self._active_subscribers(collection, doc_id)
            for subscription in subscribers:
                if subscription.active:
                    subscription.on_error(error)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_access(self, collection: str, doc_id: str) -> None:
        if (collection, doc_id) in self._denied:
            raise PermissionDeniedError(
                f"Missing or insufficient permissions: {collection}/{doc_id}",
                path=f"{collection}/{doc_id}",
            )

    def _snapshot(self, collection: str, doc_id: str) -> DocumentSnapshot:
        data = self._collections.get(collection, {}).get(doc_id)
        if data is None:
            return DocumentSnapshot(doc_id=doc_id, exists=False)
        return DocumentSnapshot(doc_id=doc_id, exists=True, data=copy.deepcopy(data))

    def _active_subscribers(self, collection: str, doc_id: str) -> list[_Subscription]:
        return [s for s in self._subscriptions.get((collection, doc_id), []) if s.active]

    @staticmethod
    def _notify(subscribers: list[_Subscription], snapshot: DocumentSnapshot) -> None:
        for subscription in subscribers:
            # Unsubscribed by an earlier callback in this round
            if subscription.active:
                subscription.on_data(snapshot)
