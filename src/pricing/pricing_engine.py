"""
Pricing engine module.

Estimates parcel delivery prices from weight, dimensions, service tier and
destination region or country.

Domestic: P = round_100((base_fee + per_kg × W_chargeable) × S × R)
International: P = round_1(W_chargeable × country rate)
Where:
- W_chargeable = max(actual weight, (L × W × H) / volumetric_divisor)
- S = service tier multiplier
- R = destination region multiplier
"""

import logging
import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable

import pandas as pd

from src.pricing.models import (
    InternationalRate,
    ParcelDimensions,
    PricingInput,
    PricingResult,
    PricingValidationError,
    ServiceTier,
)
from src.utils.config_loader import AppConfig, TariffConfig

logger = logging.getLogger(__name__)

# Default tariff constants
VOLUMETRIC_DIVISOR = 5000
BASE_FEE = 2500
PER_KG_RATE = 1200
ROUNDING_INCREMENT = 100

QUOTE_COLUMNS = [
    "weight_kg",
    "length_cm",
    "width_cm",
    "height_cm",
    "service_tier",
    "destination_region",
]


def _to_finite(value: Any, field: str) -> float:
    if isinstance(value, bool):
        raise PricingValidationError(f"{field} must be a number, got {value!r}", field=field)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise PricingValidationError(f"{field} must be a number, got {value!r}", field=field)
    if not math.isfinite(number):
        raise PricingValidationError(f"{field} must be finite, got {value!r}", field=field)
    return number


def _require_non_negative(value: Any, field: str) -> float:
    number = _to_finite(value, field)
    if number < 0:
        raise PricingValidationError(f"{field} must not be negative, got {number}", field=field)
    return number


def _require_in_range(value: Any, field: str, maximum: float) -> float:
    number = _to_finite(value, field)
    if number <= 0:
        raise PricingValidationError(f"{field} must be > 0, got {number}", field=field)
    if number > maximum:
        raise PricingValidationError(f"{field} must be <= {maximum}, got {number}", field=field)
    return number


def compute_volumetric_weight(
    length_cm: float,
    width_cm: float,
    height_cm: float,
    divisor: float = VOLUMETRIC_DIVISOR,
) -> float:
    """
    Compute volumetric weight in kilograms.

    W_vol = (L × W × H) / divisor, floored at zero. No rounding is applied.

    Args:
        length_cm: Parcel length in centimeters.
        width_cm: Parcel width in centimeters.
        height_cm: Parcel height in centimeters.
        divisor: Volumetric divisor (5000 for cm/kg air cargo).

    Returns:
        float: Volumetric weight in kg.

    Raises:
        PricingValidationError: If any dimension is negative or not finite.
    """
    length = _require_non_negative(length_cm, "length_cm")
    width = _require_non_negative(width_cm, "width_cm")
    height = _require_non_negative(height_cm, "height_cm")
    return max(0.0, (length * width * height) / divisor)


def compute_chargeable_weight(actual_weight_kg: float, volumetric_weight_kg: float) -> float:
    """
    Return the greater of actual and volumetric weight.

    Raises:
        PricingValidationError: If either weight is negative or not finite.
    """
    actual = _require_non_negative(actual_weight_kg, "actual_weight_kg")
    volumetric = _require_non_negative(volumetric_weight_kg, "volumetric_weight_kg")
    return max(actual, volumetric)


def get_service_multiplier(service_tier: ServiceTier | str, tariff: TariffConfig) -> Decimal:
    """
    Look up the multiplier for a service tier.

    Raises:
        PricingValidationError: If the tier is unknown or has no multiplier.
    """
    tier = ServiceTier.parse(service_tier)
    multiplier = tariff.service_multipliers.get(tier.value)
    if multiplier is None:
        raise PricingValidationError(
            f"No multiplier configured for service tier: {tier.value}", field="service_tier"
        )
    return Decimal(str(multiplier))


def get_region_multiplier(destination_region: str, tariff: TariffConfig) -> Decimal:
    """
    Look up the multiplier for a destination region.

    The home region and the catch-all region have their own multipliers;
    every other named region shares one.

    Raises:
        PricingValidationError: If the region is not one of the tariff regions.
    """
    if destination_region not in tariff.regions:
        raise PricingValidationError(
            f"Unknown destination region: {destination_region!r}", field="destination_region"
        )
    if destination_region == tariff.home_region:
        multiplier = tariff.home_multiplier
    elif destination_region == tariff.catch_all_region:
        multiplier = tariff.catch_all_multiplier
    else:
        multiplier = tariff.named_region_multiplier
    return Decimal(str(multiplier))


def round_price(raw: Decimal, increment: int = ROUNDING_INCREMENT) -> int:
    """Round a raw price to the nearest increment, halves rounding up."""
    step = Decimal(increment)
    return int((raw / step).quantize(Decimal("1"), rounding=ROUND_HALF_UP) * step)


def estimate_price(
    service_tier: ServiceTier | str,
    destination_region: str,
    chargeable_weight_kg: float,
    tariff: TariffConfig | None = None,
) -> int:
    """
    Estimate the price of a parcel in minor units of the tariff currency.

    raw = (base_fee + per_kg_rate × chargeable) × service_mult × region_mult

    Args:
        service_tier: Delivery speed class.
        destination_region: Destination region name.
        chargeable_weight_kg: Chargeable weight in kg.
        tariff: Tariff to apply. Defaults to the built-in placeholder tariff.

    Returns:
        int: Price rounded to the nearest rounding increment.

    Raises:
        PricingValidationError: On unknown tier/region or invalid weight.
    """
    tariff = tariff or TariffConfig()
    weight = _require_non_negative(chargeable_weight_kg, "chargeable_weight_kg")

    service_multiplier = get_service_multiplier(service_tier, tariff)
    region_multiplier = get_region_multiplier(destination_region, tariff)

    raw = (
        (Decimal(str(tariff.base_fee)) + Decimal(str(tariff.per_kg_rate)) * Decimal(str(weight)))
        * service_multiplier
        * region_multiplier
    )
    return round_price(raw, tariff.rounding_increment)


def format_money(amount: float, currency: str = "MMK") -> str:
    """Format an amount as whole units with thousands separators, e.g. "3,700 MMK"."""
    whole = int(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return f"{whole:,} {currency}"


def format_weight_summary(result: PricingResult) -> str:
    """Breakdown line shown under a quote, e.g. "Chargeable Weight: 1.00 kg (Volumetric: 0.60 kg)"."""
    return (
        f"Chargeable Weight: {result.chargeable_weight_kg:.2f} kg "
        f"(Volumetric: {result.volumetric_weight_kg:.2f} kg)"
    )


def find_international_rate(country: str, rates: Iterable[InternationalRate]) -> InternationalRate:
    """
    Find the rate for a destination country (case-insensitive).

    Raises:
        PricingValidationError: If no rate is listed for the country.
    """
    key = str(country or "").strip().lower()
    for rate in rates:
        if rate.country_name.lower() == key:
            return rate
    raise PricingValidationError(f"No international rate for country: {country!r}", field="country")


def rates_from_dataframe(df: pd.DataFrame) -> list[InternationalRate]:
    """
    Read international rates from a table with country_name and base_rate_5_10kg columns.

    Rows with a blank country or an invalid rate are skipped with a warning.

    Raises:
        PricingValidationError: If a required column is missing.
    """
    missing = [col for col in ("country_name", "base_rate_5_10kg") if col not in df.columns]
    if missing:
        raise PricingValidationError(f"Missing required columns: {', '.join(missing)}")

    rates = []
    for record in df.to_dict("records"):
        try:
            rates.append(InternationalRate.from_document(record))
        except PricingValidationError as e:
            logger.warning(f"Skipping rate row: {e}")
    return rates


class PricingEngine:
    """
    Engine for estimating parcel prices against a configurable tariff.

    Applies:
    - Volumetric weight (L × W × H / divisor)
    - Chargeable weight (max of actual and volumetric)
    - Service and region multipliers
    - Rounding to the nearest increment

    Attributes:
        config: Application configuration.
        tariff: Tariff in effect (config.pricing).
    """

    def __init__(self, config: AppConfig | None = None) -> None:
        """
        Initialize the pricing engine.

        Args:
            config: Application configuration. Defaults to built-in settings.
        """
        self.config = config or AppConfig()
        self.tariff = self.config.pricing

    @property
    def regions(self) -> list[str]:
        return list(self.tariff.regions)

    @property
    def service_tiers(self) -> list[str]:
        return [tier.value for tier in ServiceTier if tier.value in self.tariff.service_multipliers]

    def compute_volumetric_weight(self, dimensions: ParcelDimensions) -> float:
        return compute_volumetric_weight(
            dimensions.length_cm,
            dimensions.width_cm,
            dimensions.height_cm,
            divisor=self.tariff.volumetric_divisor,
        )

    def estimate_price(
        self,
        service_tier: ServiceTier | str,
        destination_region: str,
        chargeable_weight_kg: float,
    ) -> int:
        return estimate_price(service_tier, destination_region, chargeable_weight_kg, self.tariff)

    def validate_input(self, pricing_input: PricingInput) -> None:
        """
        Re-validate form input at the engine boundary.

        Raises:
            PricingValidationError: If weight or a dimension is out of range,
                or the tier/region is unknown.
        """
        _require_in_range(pricing_input.actual_weight_kg, "weight_kg", self.tariff.max_weight_kg)
        dims = pricing_input.dimensions
        for field, value in (
            ("length_cm", dims.length_cm),
            ("width_cm", dims.width_cm),
            ("height_cm", dims.height_cm),
        ):
            _require_in_range(value, field, self.tariff.max_dimension_cm)
        get_service_multiplier(pricing_input.service_tier, self.tariff)
        get_region_multiplier(pricing_input.destination_region, self.tariff)

    def estimate(self, pricing_input: PricingInput) -> PricingResult:
        """
        Estimate the price for a parcel.

        Args:
            pricing_input: Validated or raw form input.

        Returns:
            PricingResult: Volumetric weight, chargeable weight and price.

        Raises:
            PricingValidationError: If the input fails boundary validation.
        """
        self.validate_input(pricing_input)

        volumetric = self.compute_volumetric_weight(pricing_input.dimensions)
        chargeable = compute_chargeable_weight(pricing_input.actual_weight_kg, volumetric)
        price = self.estimate_price(
            pricing_input.service_tier, pricing_input.destination_region, chargeable
        )

        return PricingResult(
            volumetric_weight_kg=volumetric,
            chargeable_weight_kg=chargeable,
            estimated_price_minor_units=price,
            currency=self.tariff.currency,
        )

    def get_pricing_summary(self, pricing_input: PricingInput) -> str:
        """
        Get a human-readable summary of the weight calculation.

        Args:
            pricing_input: Parcel to summarize.

        Returns:
            str: e.g. "Chargeable Weight: 1.00 kg (Volumetric: 0.60 kg)".
        """
        return format_weight_summary(self.estimate(pricing_input))

    def estimate_international(
        self,
        actual_weight_kg: float,
        dimensions: ParcelDimensions,
        country: str,
        rates: Iterable[InternationalRate],
    ) -> PricingResult:
        """
        Estimate an international air cargo price.

        price = chargeable weight × the country's base_rate_5_10kg, rounded
        half-up to the international rounding increment. Service tier and
        region multipliers do not apply. Dimensions may be zero (weight only).

        Args:
            actual_weight_kg: Scale weight of the parcel.
            dimensions: Parcel dimensions in cm.
            country: Destination country name.
            rates: Available per-country rates.

        Returns:
            PricingResult: Weights and the rounded price.

        Raises:
            PricingValidationError: On out-of-range input or an unlisted country.
        """
        _require_in_range(actual_weight_kg, "weight_kg", self.tariff.max_weight_kg)
        for field, value in (
            ("length_cm", dimensions.length_cm),
            ("width_cm", dimensions.width_cm),
            ("height_cm", dimensions.height_cm),
        ):
            if _require_non_negative(value, field) > self.tariff.max_dimension_cm:
                raise PricingValidationError(
                    f"{field} must be <= {self.tariff.max_dimension_cm}, got {value}", field=field
                )

        rate = find_international_rate(country, rates)
        volumetric = self.compute_volumetric_weight(dimensions)
        chargeable = compute_chargeable_weight(actual_weight_kg, volumetric)

        raw = Decimal(str(chargeable)) * Decimal(str(rate.base_rate_5_10kg))
        price = round_price(raw, self.tariff.international_rounding_increment)
        logger.debug(f"International quote to {rate.country_name}: {price} {self.tariff.currency}")

        return PricingResult(
            volumetric_weight_kg=volumetric,
            chargeable_weight_kg=chargeable,
            estimated_price_minor_units=price,
            currency=self.tariff.currency,
        )


def attach_quotes(df: pd.DataFrame, engine: PricingEngine) -> pd.DataFrame:
    """
    Quote every parcel in a DataFrame.

    Expects the columns in QUOTE_COLUMNS. Adds:
    - volumetric_weight_kg
    - chargeable_weight_kg
    - estimated_price
    - quote_error: validation message for rows that could not be quoted

    Args:
        df: DataFrame with one parcel per row.
        engine: Pricing engine to apply.

    Returns:
        pd.DataFrame: Copy of the DataFrame with quote columns added.

    Raises:
        PricingValidationError: If required columns are missing.
    """
    missing = [col for col in QUOTE_COLUMNS if col not in df.columns]
    if missing:
        raise PricingValidationError(f"Missing required columns: {', '.join(missing)}")

    df = df.copy()
    quote_columns = ["volumetric_weight_kg", "chargeable_weight_kg", "estimated_price", "quote_error"]

    def quote_row(row) -> pd.Series:
        try:
            result = engine.estimate(
                PricingInput(
                    actual_weight_kg=row["weight_kg"],
                    dimensions=ParcelDimensions(row["length_cm"], row["width_cm"], row["height_cm"]),
                    service_tier=row["service_tier"],
                    destination_region=row["destination_region"],
                )
            )
        except PricingValidationError as e:
            return pd.Series([None, None, None, str(e)], index=quote_columns, dtype=object)
        return pd.Series(
            [
                result.volumetric_weight_kg,
                result.chargeable_weight_kg,
                result.estimated_price_minor_units,
                None,
            ],
            index=quote_columns,
            dtype=object,
        )

    if df.empty:
        for col in quote_columns:
            df[col] = pd.Series(dtype=object)
        return df

    quotes = df.apply(quote_row, axis=1)
    for col in quote_columns:
        df[col] = quotes[col]

    failed = int(df["quote_error"].notna().sum())
    if failed:
        logger.warning(f"{failed} of {len(df)} parcels could not be quoted")
    logger.info(f"Quoted {len(df) - failed} parcels")
    return df
