"""
Data models for courier API responses.

Contains typed dataclasses for parsing orders, payments and tracking data.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class OrderStatus(str, Enum):
    """Order lifecycle states."""

    CREATED = "created"
    CONFIRMED = "confirmed"
    PICKED_UP = "picked_up"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentProvider(str, Enum):
    STRIPE = "stripe"
    PAYPAL = "paypal"
    CASH = "cash"
    MANUAL = "manual"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    REQUIRES_ACTION = "requires_action"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class TrackingEventType(str, Enum):
    """Timeline event kinds."""

    ORDER_CREATED = "order_created"
    CONFIRMED = "confirmed"
    DRIVER_ASSIGNED = "driver_assigned"
    PICKED_UP = "picked_up"
    IN_TRANSIT = "in_transit"
    ARRIVED = "arrived"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


@dataclass
class Money:
    """
    Amount in minor units.

    Attributes:
        amount: Amount in cents/pya.
        currency: ISO currency code, e.g. "USD", "MMK".
    """

    amount: int
    currency: str

    @classmethod
    def from_api_response(cls, data: dict[str, Any] | None) -> "Money | None":
        if not data:
            return None
        return cls(amount=int(data.get("amount", 0)), currency=data.get("currency", ""))

    def to_dict(self) -> dict[str, Any]:
        return {"amount": self.amount, "currency": self.currency}


@dataclass
class LatLng:
    lat: float
    lng: float

    @classmethod
    def from_api_response(cls, data: dict[str, Any] | None) -> "LatLng | None":
        if not data:
            return None
        return cls(lat=float(data["lat"]), lng=float(data["lng"]))

    def to_dict(self) -> dict[str, Any]:
        return {"lat": self.lat, "lng": self.lng}


@dataclass
class Address:
    """Pickup or dropoff address."""

    line1: str
    name: str | None = None
    phone: str | None = None
    line2: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None
    lat: float | None = None
    lng: float | None = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "Address":
        return cls(
            line1=data.get("line1", ""),
            name=data.get("name"),
            phone=data.get("phone"),
            line2=data.get("line2"),
            city=data.get("city"),
            state=data.get("state"),
            postal_code=data.get("postalCode"),
            country=data.get("country"),
            lat=data.get("lat"),
            lng=data.get("lng"),
        )

    def to_dict(self) -> dict[str, Any]:
        payload = {
            "line1": self.line1,
            "name": self.name,
            "phone": self.phone,
            "line2": self.line2,
            "city": self.city,
            "state": self.state,
            "postalCode": self.postal_code,
            "country": self.country,
            "lat": self.lat,
            "lng": self.lng,
        }
        return {k: v for k, v in payload.items() if v is not None}


@dataclass
class OrderItem:
    name: str
    quantity: int
    price: Money | None = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "OrderItem":
        return cls(
            name=data.get("name", ""),
            quantity=int(data.get("quantity", 1)),
            price=Money.from_api_response(data.get("price")),
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"name": self.name, "quantity": self.quantity}
        if self.price:
            payload["price"] = self.price.to_dict()
        return payload


@dataclass
class Order:
    """
    Delivery order from the courier API.

    Attributes:
        order_id: Order id.
        user_id: Customer who placed the order.
        status: Current order status.
        pickup: Pickup address.
        dropoff: Dropoff address.
        driver_id: Assigned driver, if any.
        items: Line items.
        fee: Delivery fee.
        total: Order total.
        note: Customer note.
        created_at: ISO timestamp.
        updated_at: ISO timestamp.
    """

    order_id: str
    user_id: str
    status: OrderStatus
    pickup: Address
    dropoff: Address
    driver_id: str | None = None
    items: list[OrderItem] = field(default_factory=list)
    fee: Money | None = None
    total: Money | None = None
    note: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "Order":
        return cls(
            order_id=str(data.get("id", "")),
            user_id=str(data.get("userId", "")),
            status=OrderStatus(data.get("status", "created")),
            pickup=Address.from_api_response(data.get("pickup") or {}),
            dropoff=Address.from_api_response(data.get("dropoff") or {}),
            driver_id=data.get("driverId"),
            items=[OrderItem.from_api_response(i) for i in data.get("items") or []],
            fee=Money.from_api_response(data.get("fee")),
            total=Money.from_api_response(data.get("total")),
            note=data.get("note"),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )


@dataclass
class OrderPage:
    """One page of a paginated order listing."""

    orders: list[Order]
    next_cursor: str | None = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "OrderPage":
        return cls(
            orders=[Order.from_api_response(o) for o in data.get("data") or []],
            next_cursor=data.get("nextCursor"),
        )


@dataclass
class Payment:
    """
    Payment attempt for an order.

    Attributes:
        payment_id: Payment id.
        order_id: Order being paid.
        provider: Payment provider.
        status: Payment status.
        amount: Amount charged.
        client_secret: Provider client secret (card flows).
        redirect_url: Provider redirect URL (wallet flows).
    """

    payment_id: str
    order_id: str
    provider: PaymentProvider
    status: PaymentStatus
    amount: Money | None = None
    created_at: str | None = None
    updated_at: str | None = None
    client_secret: str | None = None
    redirect_url: str | None = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "Payment":
        return cls(
            payment_id=str(data.get("id", "")),
            order_id=str(data.get("orderId", "")),
            provider=PaymentProvider(data.get("provider", "manual")),
            status=PaymentStatus(data.get("status", "pending")),
            amount=Money.from_api_response(data.get("amount")),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
            client_secret=data.get("clientSecret"),
            redirect_url=data.get("redirectUrl"),
        )


@dataclass
class TrackingEvent:
    """Order timeline event."""

    event_id: str
    order_id: str
    event_type: TrackingEventType
    message: str | None = None
    location: LatLng | None = None
    created_at: str | None = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "TrackingEvent":
        return cls(
            event_id=str(data.get("id", "")),
            order_id=str(data.get("orderId", "")),
            event_type=TrackingEventType(data["type"]),
            message=data.get("message"),
            location=LatLng.from_api_response(data.get("location")),
            created_at=data.get("createdAt"),
        )


@dataclass
class DriverLocation:
    """Latest reported position of the driver on an order."""

    order_id: str
    driver_id: str
    location: LatLng
    heading: float | None = None
    speed: float | None = None
    accuracy: float | None = None
    recorded_at: str | None = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "DriverLocation":
        return cls(
            order_id=str(data.get("orderId", "")),
            driver_id=str(data.get("driverId", "")),
            location=LatLng.from_api_response(data.get("location")) or LatLng(0.0, 0.0),
            heading=data.get("heading"),
            speed=data.get("speed"),
            accuracy=data.get("accuracy"),
            recorded_at=data.get("recordedAt"),
        )


@dataclass
class AuthUser:
    user_id: str
    name: str
    email: str
    role: str | None = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "AuthUser":
        return cls(
            user_id=str(data.get("id", "")),
            name=data.get("name", ""),
            email=data.get("email", ""),
            role=data.get("role"),
        )


@dataclass
class AuthTokens:
    """
    Tokens issued by the courier API.

    Attributes:
        access_token: Bearer token for API calls.
        refresh_token: Token for obtaining a new access token.
        expires_in: Access token lifetime in seconds.
    """

    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "AuthTokens":
        return cls(
            access_token=data.get("accessToken", ""),
            refresh_token=data.get("refreshToken"),
            expires_in=data.get("expiresIn"),
        )


@dataclass
class AuthResponse:
    user: AuthUser
    tokens: AuthTokens

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "AuthResponse":
        return cls(
            user=AuthUser.from_api_response(data.get("user") or {}),
            tokens=AuthTokens.from_api_response(data.get("tokens") or {}),
        )
