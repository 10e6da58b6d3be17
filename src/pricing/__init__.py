"""
Pricing module.

Estimates domestic parcel prices from volumetric and chargeable weight with a
configurable placeholder tariff, and international prices from per-country
rates.
"""

from src.pricing.models import (
    InternationalRate,
    ParcelDimensions,
    PricingInput,
    PricingResult,
    PricingValidationError,
    ServiceTier,
)
from src.pricing.pricing_engine import (
    PricingEngine,
    attach_quotes,
    compute_chargeable_weight,
    compute_volumetric_weight,
    estimate_price,
    format_money,
    format_weight_summary,
    rates_from_dataframe,
)

__all__ = [
    "InternationalRate",
    "ParcelDimensions",
    "PricingEngine",
    "PricingInput",
    "PricingResult",
    "PricingValidationError",
    "ServiceTier",
    "attach_quotes",
    "compute_chargeable_weight",
    "compute_volumetric_weight",
    "estimate_price",
    "format_money",
    "format_weight_summary",
    "rates_from_dataframe",
]
