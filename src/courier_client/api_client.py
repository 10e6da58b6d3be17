"""
Courier REST API client implementation.

Wrapper for the courier backend API including:
- Bearer token authentication
- Orders
- Payments
- Tracking timeline and driver location
- Retry logic for transient failures
"""

import logging
import os
from typing import Any
from urllib.parse import quote

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from src.courier_client.models import (
    Address,
    AuthResponse,
    AuthTokens,
    DriverLocation,
    LatLng,
    Order,
    OrderItem,
    OrderPage,
    OrderStatus,
    Payment,
    PaymentProvider,
    TrackingEvent,
    TrackingEventType,
)
from src.utils.config_loader import ApiConfig

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:3000/api"


class CourierClientError(Exception):
    """Base exception for courier API errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class CourierAuthError(CourierClientError):
    """Authentication error with the courier API."""

    pass


def _path(value: str) -> str:
    return quote(str(value), safe="")


class CourierClient:
    """
    Client for the courier backend REST API.

    Attributes:
        config: API configuration.
        base_url: Base URL for API requests, without trailing slash.
        timeout: Request timeout in seconds.
        session: Requests session with retry logic.
    """

    def __init__(self, config: ApiConfig | None = None) -> None:
        """
        Initialize the courier API client.

        Args:
            config: API configuration. The base URL falls back to the
                environment variable named by config.base_url_env, then
                to the local development server.
        """
        self.config = config or ApiConfig()

        base_url = self.config.base_url or os.environ.get(self.config.base_url_env, "")
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.timeout = self.config.timeout
        self.session = self._create_session()

    def _create_session(self) -> requests.Session:
        """
        Create a requests session with retry logic.

        Returns:
            requests.Session: Configured session object.
        """
        session = requests.Session()
        session.headers.update(
            {
                "Content-Type": "application/json",
                "Accept": "application/json",
            }
        )

        retry_strategy = Retry(
            total=self.config.max_retries,
            backoff_factor=1.0,
            status_forcelist=[429, 502, 503, 504],
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("https://", adapter)
        session.mount("http://", adapter)

        return session

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def set_auth_token(self, token: str | None) -> None:
        """Set or clear the bearer token sent with every request."""
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"
        else:
            self.session.headers.pop("Authorization", None)

    @property
    def has_auth_token(self) -> bool:
        return "Authorization" in self.session.headers

    @staticmethod
    def _error_message(response: requests.Response, fallback: str) -> str:
        """Prefer the API's message, then its error code, then the fallback."""
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = body.get("message") or body.get("error")
            if message:
                return str(message)
        return fallback or "Request failed"

    def _make_request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
    ) -> Any:
        """
        Make an API request.

        Args:
            method: HTTP method (GET, POST, etc.).
            endpoint: API endpoint path.
            params: Query parameters.
            data: JSON request body.

        Returns:
            Parsed JSON response, or None for an empty body.

        Raises:
            CourierAuthError: If authentication fails.
            CourierClientError: For other API or network errors.
        """
        url = f"{self.base_url}{endpoint}"
        logger.debug(f"{method} {url} params={params}")

        try:
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=data,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            logger.error(f"Request timeout for {endpoint}: {e}")
            raise CourierClientError(f"Request timeout for {endpoint}") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Network error for {endpoint}: {e}")
            raise CourierClientError(str(e) or "Request failed") from e

        if response.status_code == 401:
            raise CourierAuthError(
                self._error_message(response, "Authentication failed"), status_code=401
            )

        if not response.ok:
            message = self._error_message(
                response, f"{response.status_code} {response.reason or ''}".strip()
            )
            logger.error(f"HTTP error for {endpoint}: {response.status_code} {message}")
            raise CourierClientError(message, status_code=response.status_code)

        if not response.content:
            return None
        return response.json()

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    def login(self, email: str, password: str) -> AuthResponse:
        data = self._make_request("POST", "/auth/login", data={"email": email, "password": password})
        auth = AuthResponse.from_api_response(data)
        self.set_auth_token(auth.tokens.access_token)
        return auth

    def register(self, name: str, email: str, password: str) -> AuthResponse:
        data = self._make_request(
            "POST",
            "/auth/register",
            data={"name": name, "email": email, "password": password},
        )
        auth = AuthResponse.from_api_response(data)
        self.set_auth_token(auth.tokens.access_token)
        return auth

    def refresh_token(self, refresh_token: str) -> AuthTokens:
        data = self._make_request("POST", "/auth/refresh", data={"refreshToken": refresh_token})
        tokens = AuthTokens.from_api_response(data)
        self.set_auth_token(tokens.access_token)
        return tokens

    def logout(self) -> None:
        """
        Log out of the API.

        A failed logout call is logged; the local token is cleared either way.
        """
        try:
            self._make_request("POST", "/auth/logout")
        except CourierClientError as e:
            logger.warning(f"Logout request failed: {e}")
        finally:
            self.set_auth_token(None)

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def create_order(
        self,
        pickup: Address,
        dropoff: Address,
        items: list[OrderItem] | None = None,
        note: str | None = None,
    ) -> Order:
        payload: dict[str, Any] = {"pickup": pickup.to_dict(), "dropoff": dropoff.to_dict()}
        if items is not None:
            payload["items"] = [item.to_dict() for item in items]
        if note is not None:
            payload["note"] = note
        return Order.from_api_response(self._make_request("POST", "/orders", data=payload))

    def get_order(self, order_id: str) -> Order:
        return Order.from_api_response(self._make_request("GET", f"/orders/{_path(order_id)}"))

    def list_orders(
        self,
        status: OrderStatus | None = None,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> OrderPage:
        """
        List orders visible to the current user.

        Args:
            status: Only orders in this status.
            limit: Page size.
            cursor: Cursor from the previous page's next_cursor.
        """
        params: dict[str, Any] = {}
        if status is not None:
            params["status"] = OrderStatus(status).value
        if limit is not None:
            params["limit"] = limit
        if cursor is not None:
            params["cursor"] = cursor
        return OrderPage.from_api_response(self._make_request("GET", "/orders", params=params))

    def update_order(
        self,
        order_id: str,
        pickup: Address | None = None,
        dropoff: Address | None = None,
        items: list[OrderItem] | None = None,
        note: str | None = None,
    ) -> Order:
        payload: dict[str, Any] = {}
        if pickup is not None:
            payload["pickup"] = pickup.to_dict()
        if dropoff is not None:
            payload["dropoff"] = dropoff.to_dict()
        if items is not None:
            payload["items"] = [item.to_dict() for item in items]
        if note is not None:
            payload["note"] = note
        return Order.from_api_response(
            self._make_request("PATCH", f"/orders/{_path(order_id)}", data=payload)
        )

    def cancel_order(self, order_id: str, reason: str | None = None) -> Order:
        return Order.from_api_response(
            self._make_request("POST", f"/orders/{_path(order_id)}/cancel", data={"reason": reason})
        )

    def assign_driver(self, order_id: str, driver_id: str) -> Order:
        return Order.from_api_response(
            self._make_request(
                "POST", f"/orders/{_path(order_id)}/assign-driver", data={"driverId": driver_id}
            )
        )

    def update_order_status(self, order_id: str, status: OrderStatus) -> Order:
        return Order.from_api_response(
            self._make_request(
                "POST",
                f"/orders/{_path(order_id)}/status",
                data={"status": OrderStatus(status).value},
            )
        )

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    def create_payment(self, order_id: str, provider: PaymentProvider) -> Payment:
        return Payment.from_api_response(
            self._make_request(
                "POST",
                "/payments",
                data={"orderId": order_id, "provider": PaymentProvider(provider).value},
            )
        )

    def get_payment(self, payment_id: str) -> Payment:
        return Payment.from_api_response(
            self._make_request("GET", f"/payments/{_path(payment_id)}")
        )

    def list_payments_by_order(self, order_id: str) -> list[Payment]:
        data = self._make_request("GET", f"/orders/{_path(order_id)}/payments") or []
        return [Payment.from_api_response(p) for p in data]

    def confirm_payment(self, payment_id: str, data: dict[str, Any] | None = None) -> Payment:
        return Payment.from_api_response(
            self._make_request(
                "POST", f"/payments/{_path(payment_id)}/confirm", data={"data": data or {}}
            )
        )

    # ------------------------------------------------------------------
    # Tracking
    # ------------------------------------------------------------------

    def get_tracking_timeline(self, order_id: str) -> list[TrackingEvent]:
        data = self._make_request("GET", f"/orders/{_path(order_id)}/tracking") or []
        return [TrackingEvent.from_api_response(e) for e in data]

    def add_tracking_event(
        self,
        order_id: str,
        event_type: TrackingEventType,
        message: str | None = None,
        location: LatLng | None = None,
    ) -> TrackingEvent:
        payload: dict[str, Any] = {
            "orderId": order_id,
            "type": TrackingEventType(event_type).value,
        }
        if message is not None:
            payload["message"] = message
        if location is not None:
            payload["location"] = location.to_dict()
        return TrackingEvent.from_api_response(
            self._make_request("POST", f"/orders/{_path(order_id)}/tracking", data=payload)
        )

    def update_driver_location(
        self,
        order_id: str,
        driver_id: str,
        location: LatLng,
        heading: float | None = None,
        speed: float | None = None,
        accuracy: float | None = None,
    ) -> None:
        payload: dict[str, Any] = {
            "orderId": order_id,
            "driverId": driver_id,
            "location": location.to_dict(),
        }
        for key, value in (("heading", heading), ("speed", speed), ("accuracy", accuracy)):
            if value is not None:
                payload[key] = value
        self._make_request("POST", f"/orders/{_path(order_id)}/driver-location", data=payload)

    def get_latest_driver_location(self, order_id: str) -> DriverLocation | None:
        data = self._make_request("GET", f"/orders/{_path(order_id)}/driver-location/latest")
        if not data:
            return None
        return DriverLocation.from_api_response(data)
