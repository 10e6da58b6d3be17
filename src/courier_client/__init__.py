"""
Courier API client module.

Provides a client for the courier backend REST API (orders, payments,
tracking).
"""

from src.courier_client.api_client import CourierAuthError, CourierClient, CourierClientError
from src.courier_client.models import (
    Address,
    AuthResponse,
    AuthTokens,
    AuthUser,
    DriverLocation,
    LatLng,
    Money,
    Order,
    OrderItem,
    OrderPage,
    OrderStatus,
    Payment,
    PaymentProvider,
    PaymentStatus,
    TrackingEvent,
    TrackingEventType,
)

__all__ = [
    "CourierClient",
    "CourierClientError",
    "CourierAuthError",
    "Address",
    "AuthResponse",
    "AuthTokens",
    "AuthUser",
    "DriverLocation",
    "LatLng",
    "Money",
    "Order",
    "OrderItem",
    "OrderPage",
    "OrderStatus",
    "Payment",
    "PaymentProvider",
    "PaymentStatus",
    "TrackingEvent",
    "TrackingEventType",
]
