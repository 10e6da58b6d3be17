"""
Pydantic models for request/response bodies in the web application.

Provides request validation with sensible defaults and constraints.
"""

import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, validator

from src.pricing.models import ParcelDimensions, PricingInput

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ParcelRequest(BaseModel):
    """
    Parcel details for a price estimate.

    Range limits mirror the quote form; the engine re-checks them.
    """

    weight_kg: float = Field(..., gt=0, le=200, description="Actual weight in kg")
    length_cm: float = Field(..., gt=0, le=300, description="Length in cm")
    width_cm: float = Field(..., gt=0, le=300, description="Width in cm")
    height_cm: float = Field(..., gt=0, le=300, description="Height in cm")
    service_tier: str = Field("Standard", description="Standard, Express or Same-day")
    destination_region: str = Field("Yangon", description="Destination region")

    class Config:
        """Pydantic config."""

        extra = "ignore"

    def to_pricing_input(self) -> PricingInput:
        return PricingInput(
            actual_weight_kg=self.weight_kg,
            dimensions=ParcelDimensions(self.length_cm, self.width_cm, self.height_cm),
            service_tier=self.service_tier,
            destination_region=self.destination_region,
        )


class InternationalParcelRequest(BaseModel):
    """
    Parcel details for an international estimate.

    Dimensions are optional; a parcel without them is priced by weight.
    """

    weight_kg: float = Field(..., gt=0, le=200, description="Actual weight in kg")
    length_cm: float = Field(0, ge=0, le=300, description="Length in cm")
    width_cm: float = Field(0, ge=0, le=300, description="Width in cm")
    height_cm: float = Field(0, ge=0, le=300, description="Height in cm")
    country: str = Field(..., min_length=1, description="Destination country")

    class Config:
        """Pydantic config."""

        extra = "ignore"

    def to_dimensions(self) -> ParcelDimensions:
        return ParcelDimensions(self.length_cm, self.width_cm, self.height_cm)


class QuoteRequest(ParcelRequest):
    """Public quotation request: parcel details plus sender and receiver."""

    sender_name: str = Field(..., min_length=2, description="Sender name")
    sender_phone: str = Field(..., min_length=6, description="Sender phone")
    sender_email: Optional[str] = Field("", description="Optional sender email")
    pickup_address: str = Field(..., min_length=6, description="Pickup address")

    receiver_name: str = Field(..., min_length=2, description="Receiver name")
    receiver_phone: str = Field(..., min_length=6, description="Receiver phone")
    destination_address: str = Field(..., min_length=6, description="Destination address")

    notes: Optional[str] = Field("", max_length=500, description="Notes for the courier")

    @validator("sender_email")
    def validate_email(cls, v):
        """Allow blank, otherwise require a plausible address."""
        if v is None:
            return ""
        v = v.strip()
        if v and not EMAIL_PATTERN.match(v):
            raise ValueError("Invalid email")
        return v

    def to_document_fields(self) -> Dict[str, Any]:
        """Form values as stored on the quotation request document."""
        return {
            "senderName": self.sender_name,
            "senderPhone": self.sender_phone,
            "senderEmail": self.sender_email or "",
            "pickupAddress": self.pickup_address,
            "receiverName": self.receiver_name,
            "receiverPhone": self.receiver_phone,
            "destinationRegion": self.destination_region,
            "destinationAddress": self.destination_address,
            "serviceType": self.service_tier,
            "weightKg": self.weight_kg,
            "lengthCm": self.length_cm,
            "widthCm": self.width_cm,
            "heightCm": self.height_cm,
            "notes": self.notes or "",
        }


class EstimateResponse(BaseModel):
    """Price estimate for a parcel."""

    volumetric_weight_kg: float
    chargeable_weight_kg: float
    estimated_price: int
    currency: str
    formatted_price: str
    summary: str


class QuoteSubmissionResponse(BaseModel):
    """Response for a submitted quotation request."""

    request_id: str
    estimate: EstimateResponse


class TariffResponse(BaseModel):
    """Options for the quote form."""

    currency: str
    regions: List[str]
    service_tiers: List[str]


class InternationalRateItem(BaseModel):
    """One row of the international rate table."""

    country_name: str
    base_rate_5_10kg: float


class InternationalRatesResponse(BaseModel):
    """Destination countries offered by the international calculator."""

    currency: str
    rates: List[InternationalRateItem]


class SignupRequirementsResponse(BaseModel):
    """Documents required for a signup role."""

    role: str
    required_documents: List[str]
    requires_branch: bool
    max_file_mb: int
