"""
Shared fixtures and mock payloads for the test suite.

The courier API payloads are used with the `responses` library to mock
HTTP requests.
"""

from typing import Any, Dict

import pytest

from src.storage.document_store import InMemoryDocumentStore

COURIER_BASE_URL = "http://courier.test/api"


SAMPLE_ORDER: Dict[str, Any] = {
    "id": "ord_1",
    "userId": "usr_1",
    "status": "in_transit",
    "pickup": {"line1": "12 Bogyoke Rd", "city": "Yangon", "lat": 16.78, "lng": 96.15},
    "dropoff": {"line1": "34 78th St", "city": "Mandalay", "postalCode": "05021"},
    "driverId": "drv_9",
    "items": [{"name": "Books", "quantity": 2, "price": {"amount": 1500000, "currency": "MMK"}}],
    "fee": {"amount": 370000, "currency": "MMK"},
    "total": {"amount": 3370000, "currency": "MMK"},
    "note": "Call on arrival",
    "createdAt": "2024-05-01T08:00:00Z",
    "updatedAt": "2024-05-01T10:30:00Z",
}

SAMPLE_PAYMENT: Dict[str, Any] = {
    "id": "pay_1",
    "orderId": "ord_1",
    "provider": "stripe",
    "status": "requires_action",
    "amount": {"amount": 3370000, "currency": "MMK"},
    "clientSecret": "secret_123",
}

SAMPLE_TRACKING_EVENTS = [
    {"id": "ev_1", "orderId": "ord_1", "type": "order_created", "createdAt": "2024-05-01T08:00:00Z"},
    {
        "id": "ev_2",
        "orderId": "ord_1",
        "type": "picked_up",
        "message": "Picked up at Hlaing",
        "location": {"lat": 16.85, "lng": 96.12},
    },
]

SAMPLE_DRIVER_LOCATION: Dict[str, Any] = {
    "orderId": "ord_1",
    "driverId": "drv_9",
    "location": {"lat": 19.0, "lng": 96.2},
    "heading": 90.0,
    "speed": 12.5,
    "recordedAt": "2024-05-01T11:00:00Z",
}

SAMPLE_AUTH_RESPONSE: Dict[str, Any] = {
    "user": {"id": "usr_1", "name": "Aung", "email": "aung@example.com", "role": "customer"},
    "tokens": {"accessToken": "access_abc", "refreshToken": "refresh_xyz", "expiresIn": 900},
}


SAMPLE_INTERNATIONAL_RATES = [
    {"country_name": "Japan", "base_rate_5_10kg": 18500},
    {"country_name": "Singapore", "base_rate_5_10kg": 12000},
    {"country_name": "Thailand", "base_rate_5_10kg": 9500},
]

@pytest.fixture
def document_store() -> InMemoryDocumentStore:
    """Empty in-memory document store."""
    return InMemoryDocumentStore()
