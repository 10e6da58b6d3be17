"""
Shipment tracking service.

Looks up a shipment by tracking id using two strategies:
1. The tracking id is the shipment document id.
2. A shipment document carries the tracking id in its tracking id field.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from src.storage.document_store import DocumentStore, DocumentStoreError
from src.utils.config_loader import TrackingConfig

logger = logging.getLogger(__name__)


class TrackState(str, Enum):
    """Outcome of a tracking lookup."""

    SUCCESS = "success"
    NOT_FOUND = "not_found"
    INVALID = "invalid"
    ERROR = "error"


def _parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


@dataclass
class ShipmentEvent:
    """Single entry of a shipment's status history."""

    status: str
    at: datetime | None = None
    note: str | None = None
    location: str | None = None

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> "ShipmentEvent":
        return cls(
            status=str(data.get("status", "")),
            at=_parse_timestamp(data.get("at")),
            note=data.get("note"),
            location=data.get("location"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "at": self.at.isoformat() if self.at else None,
            "note": self.note,
            "location": self.location,
        }


@dataclass
class ShipmentRecord:
    """
    Shipment document as shown to the public tracking page.

    Attributes:
        tracking_id: Public tracking id, if stored on the document.
        status: Current status (created, picked_up, in_transit, delivered, ...).
        sender_name: Sender display name.
        receiver_name: Receiver display name.
        origin: Origin station or region.
        destination: Destination station or region.
        events: Status history, oldest first as stored.
        updated_at: Last update time.
    """

    tracking_id: str | None = None
    status: str | None = None
    sender_name: str | None = None
    receiver_name: str | None = None
    origin: str | None = None
    destination: str | None = None
    events: list[ShipmentEvent] = field(default_factory=list)
    updated_at: datetime | None = None

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> "ShipmentRecord":
        return cls(
            tracking_id=data.get("trackingId"),
            status=data.get("status"),
            sender_name=data.get("senderName"),
            receiver_name=data.get("receiverName"),
            origin=data.get("origin"),
            destination=data.get("destination"),
            events=[
                ShipmentEvent.from_document(e)
                for e in data.get("events") or []
                if isinstance(e, dict)
            ],
            updated_at=_parse_timestamp(data.get("updatedAt")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "tracking_id": self.tracking_id,
            "status": self.status,
            "sender_name": self.sender_name,
            "receiver_name": self.receiver_name,
            "origin": self.origin,
            "destination": self.destination,
            "events": [e.to_dict() for e in self.events],
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass
class ShipmentMatch:
    """A shipment found by tracking id."""

    doc_id: str
    shipment: ShipmentRecord


@dataclass
class TrackResult:
    """Result of TrackingService.track()."""

    state: TrackState
    doc_id: str | None = None
    shipment: ShipmentRecord | None = None
    message: str | None = None

    @property
    def found(self) -> bool:
        return self.state == TrackState.SUCCESS


class TrackingService:
    """
    Service for public shipment tracking.

    Attributes:
        config: Tracking configuration.
    """

    def __init__(self, document_store: DocumentStore, config: TrackingConfig | None = None):
        self.config = config or TrackingConfig()
        self._store = document_store

    def find_shipment(self, tracking_id: str) -> ShipmentMatch | None:
        """
        Find a shipment by document id, then by tracking id field.

        Args:
            tracking_id: Trimmed tracking id.

        Returns:
            ShipmentMatch if found, None otherwise.

        Raises:
            DocumentStoreError: If the store cannot be read.
        """
        collection = self.config.shipments_collection

        direct = self._store.get(collection, tracking_id)
        if direct.exists:
            return ShipmentMatch(direct.doc_id, ShipmentRecord.from_document(direct.data))

        matches = self._store.query(collection, self.config.tracking_id_field, tracking_id, limit=1)
        if matches:
            return ShipmentMatch(matches[0].doc_id, ShipmentRecord.from_document(matches[0].data))

        return None

    def track(self, tracking_id: str) -> TrackResult:
        """
        Track a shipment for display.

        Store failures are reported in the result instead of raised.

        Args:
            tracking_id: Tracking id as entered by the user.

        Returns:
            TrackResult: Lookup outcome.
        """
        tracking_id = (tracking_id or "").strip()
        if len(tracking_id) < self.config.min_tracking_id_length:
            return TrackResult(state=TrackState.INVALID, message="Enter a valid tracking ID")

        try:
            match = self.find_shipment(tracking_id)
        except DocumentStoreError as e:
            logger.error(f"Tracking error for {tracking_id}: {e}")
            return TrackResult(state=TrackState.ERROR, message=str(e) or "Failed to track. Try again.")

        if match is None:
            logger.info(f"No shipment found for tracking id {tracking_id}")
            return TrackResult(state=TrackState.NOT_FOUND)

        return TrackResult(state=TrackState.SUCCESS, doc_id=match.doc_id, shipment=match.shipment)
