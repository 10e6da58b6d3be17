"""
Data models for parcel pricing.

Contains the typed inputs and results exchanged with the pricing engine.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any


class PricingValidationError(ValueError):
    """Raised when pricing input is out of range or not a finite number."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class ServiceTier(str, Enum):
    """Delivery speed class."""

    STANDARD = "Standard"
    EXPRESS = "Express"
    SAME_DAY = "Same-day"

    @classmethod
    def parse(cls, value: "ServiceTier | str") -> "ServiceTier":
        """
        Resolve a service tier from its enum value or a loose spelling.

        Accepts "Same-day", "SameDay", "same_day" and so on.

        Raises:
            PricingValidationError: If the value names no known tier.
        """
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace("-", "").replace("_", "").replace(" ", "")
        for tier in cls:
            if tier.value.lower().replace("-", "") == key:
                return tier
        raise PricingValidationError(f"Unknown service tier: {value!r}", field="service_tier")


@dataclass(frozen=True)
class ParcelDimensions:
    """Parcel dimensions in centimeters."""

    length_cm: float
    width_cm: float
    height_cm: float


@dataclass(frozen=True)
class PricingInput:
    """
    Everything needed to quote a single parcel.

    Attributes:
        actual_weight_kg: Scale weight of the parcel.
        dimensions: Parcel dimensions.
        service_tier: Delivery speed class.
        destination_region: Destination, one of the tariff's regions.
    """

    actual_weight_kg: float
    dimensions: ParcelDimensions
    service_tier: ServiceTier | str
    destination_region: str


@dataclass(frozen=True)
class PricingResult:
    """
    Result of a price estimate.

    Attributes:
        volumetric_weight_kg: Weight proxy derived from the dimensions.
        chargeable_weight_kg: Greater of actual and volumetric weight.
        estimated_price_minor_units: Rounded price in the tariff currency.
        currency: Tariff currency code.
    """

    volumetric_weight_kg: float
    chargeable_weight_kg: float
    estimated_price_minor_units: int
    currency: str = "MMK"

    def to_dict(self) -> dict[str, Any]:
        return {
            "volumetric_weight_kg": self.volumetric_weight_kg,
            "chargeable_weight_kg": self.chargeable_weight_kg,
            "estimated_price": self.estimated_price_minor_units,
            "currency": self.currency,
        }


@dataclass(frozen=True)
class InternationalRate:
    """
    Per-kilogram air cargo rate for one destination country.

    Attributes:
        country_name: Destination country as shown on the calculator.
        base_rate_5_10kg: Rate per chargeable kg (the 5-10 kg band).
    """

    country_name: str
    base_rate_5_10kg: float

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> "InternationalRate":
        """
        Build a rate from a pricing_international row or document.

        Raises:
            PricingValidationError: If the country is blank or the rate is not
                a finite, non-negative number.
        """
        country = str(data.get("country_name") or "").strip()
        if not country:
            raise PricingValidationError("Rate has no country_name", field="country_name")

        raw_rate = data.get("base_rate_5_10kg")
        try:
            rate = float(raw_rate)
        except (TypeError, ValueError):
            raise PricingValidationError(
                f"Invalid base_rate_5_10kg for {country}: {raw_rate!r}", field="base_rate_5_10kg"
            )
        if not math.isfinite(rate) or rate < 0:
            raise PricingValidationError(
                f"Invalid base_rate_5_10kg for {country}: {raw_rate!r}", field="base_rate_5_10kg"
            )
        return cls(country_name=country, base_rate_5_10kg=rate)

    def to_dict(self) -> dict[str, Any]:
        return {"country_name": self.country_name, "base_rate_5_10kg": self.base_rate_5_10kg}
