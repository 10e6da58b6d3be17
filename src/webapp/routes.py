"""
FastAPI routes for the courier portal.

Handles:
- Quote form options (regions, service tiers, international countries)
- Domestic and international price estimates, quotation requests
- Public shipment tracking
- Signup document requirements
"""

import logging
from functools import lru_cache
from typing import Any, Dict

from fastapi import APIRouter, Depends

from src.pricing.models import PricingResult, PricingValidationError
from src.pricing.pricing_engine import PricingEngine, format_money, format_weight_summary
from src.services.quote_service import QuoteService
from src.services.rate_service import InternationalRateService
from src.services.signup_service import (
    SignupRole,
    parse_signup_role,
    required_documents,
    requires_branch,
)
from src.services.tracking_service import TrackingService, TrackState
from src.storage.document_store import DocumentStore, DocumentStoreError, InMemoryDocumentStore
from src.utils.config_loader import AppConfig, load_config, load_env
from src.utils.logging_config import LogContext
from src.webapp.exceptions import (
    PricingError,
    ShipmentNotFoundError,
    StorageError,
    UnknownRoleError,
    ValidationError,
)
from src.webapp.schemas import (
    EstimateResponse,
    InternationalParcelRequest,
    InternationalRateItem,
    InternationalRatesResponse,
    ParcelRequest,
    QuoteRequest,
    QuoteSubmissionResponse,
    SignupRequirementsResponse,
    TariffResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


# ============================================================================
# Dependency Injection
# ============================================================================

@lru_cache()
def get_app_config() -> AppConfig:
    """
    Get application config (cached).

    Clear cache with get_app_config.cache_clear() if config changes.
    """
    load_env()
    return load_config()


@lru_cache()
def get_document_store() -> DocumentStore:
    """Document store shared by all requests (local in-memory backend)."""
    return InMemoryDocumentStore()


def get_pricing_engine(config: AppConfig = Depends(get_app_config)) -> PricingEngine:
    return PricingEngine(config)


def get_quote_service(
    engine: PricingEngine = Depends(get_pricing_engine),
    store: DocumentStore = Depends(get_document_store),
    config: AppConfig = Depends(get_app_config),
) -> QuoteService:
    return QuoteService(engine, store, config.quotes)


def get_rate_service(
    engine: PricingEngine = Depends(get_pricing_engine),
    store: DocumentStore = Depends(get_document_store),
) -> InternationalRateService:
    return InternationalRateService(engine, store)


def get_tracking_service(
    store: DocumentStore = Depends(get_document_store),
    config: AppConfig = Depends(get_app_config),
) -> TrackingService:
    return TrackingService(store, config.tracking)


# ============================================================================
# Helpers
# ============================================================================

def build_estimate_response(result: PricingResult) -> EstimateResponse:
    return EstimateResponse(
        volumetric_weight_kg=result.volumetric_weight_kg,
        chargeable_weight_kg=result.chargeable_weight_kg,
        estimated_price=result.estimated_price_minor_units,
        currency=result.currency,
        formatted_price=format_money(result.estimated_price_minor_units, result.currency),
        summary=format_weight_summary(result),
    )


# ============================================================================
# Routes
# ============================================================================

@router.get("/pricing/tariff", response_model=TariffResponse)
async def get_tariff(engine: PricingEngine = Depends(get_pricing_engine)) -> TariffResponse:
    """Regions and service tiers offered on the quote form."""
    return TariffResponse(
        currency=engine.tariff.currency,
        regions=engine.regions,
        service_tiers=engine.service_tiers,
    )


@router.post("/quotes/estimate", response_model=EstimateResponse)
async def estimate_quote(
    parcel: ParcelRequest,
    engine: PricingEngine = Depends(get_pricing_engine),
) -> EstimateResponse:
    """Estimate the price of a parcel without recording anything."""
    try:
        result = engine.estimate(parcel.to_pricing_input())
    except PricingValidationError as e:
        raise PricingError(str(e), field=e.field)
    return build_estimate_response(result)


@router.get("/pricing/international", response_model=InternationalRatesResponse)
async def get_international_rates(
    service: InternationalRateService = Depends(get_rate_service),
) -> InternationalRatesResponse:
    """Destination countries and their per-kg rates."""
    try:
        rates = service.list_rates()
    except DocumentStoreError as e:
        logger.error(f"Failed to load international rates: {e}")
        raise StorageError("Failed to load international rates. Please try again.")

    return InternationalRatesResponse(
        currency=service.engine.tariff.currency,
        rates=[InternationalRateItem(**rate.to_dict()) for rate in rates],
    )


@router.post("/quotes/international/estimate", response_model=EstimateResponse)
async def estimate_international_quote(
    parcel: InternationalParcelRequest,
    service: InternationalRateService = Depends(get_rate_service),
) -> EstimateResponse:
    """Estimate an international air cargo price."""
    try:
        result = service.estimate(parcel.weight_kg, parcel.to_dimensions(), parcel.country)
    except PricingValidationError as e:
        raise PricingError(str(e), field=e.field)
    except DocumentStoreError as e:
        logger.error(f"Failed to load international rates: {e}")
        raise StorageError("Failed to load international rates. Please try again.")
    return build_estimate_response(result)


@router.post("/quotes", response_model=QuoteSubmissionResponse)
async def submit_quote(
    request: QuoteRequest,
    service: QuoteService = Depends(get_quote_service),
) -> QuoteSubmissionResponse:
    """Record a quotation request with its estimate."""
    try:
        submission = service.submit(request)
    except PricingValidationError as e:
        raise PricingError(str(e), field=e.field)
    except DocumentStoreError as e:
        logger.error(f"Failed to submit quotation: {e}")
        raise StorageError("Failed to submit request. Please try again.")

    return QuoteSubmissionResponse(
        request_id=submission.request_id,
        estimate=build_estimate_response(submission.result),
    )


@router.get("/tracking/{tracking_id}")
async def track_shipment(
    tracking_id: str,
    service: TrackingService = Depends(get_tracking_service),
) -> Dict[str, Any]:
    """Look up a shipment by tracking id or shipment document id."""
    with LogContext(logger, tracking_id=tracking_id.strip()):
        result = service.track(tracking_id)

    if result.state == TrackState.INVALID:
        raise ValidationError(result.message or "Enter a valid tracking ID")
    if result.state == TrackState.ERROR:
        raise StorageError(result.message or "Failed to track. Try again.")
    if result.state == TrackState.NOT_FOUND:
        raise ShipmentNotFoundError(tracking_id.strip())

    return {
        "doc_id": result.doc_id,
        "shipment": result.shipment.to_dict(),
    }


@router.get("/signup/requirements/{role}", response_model=SignupRequirementsResponse)
async def get_signup_requirements(
    role: str,
    config: AppConfig = Depends(get_app_config),
) -> SignupRequirementsResponse:
    """Documents an applicant must upload for a role."""
    try:
        signup_role: SignupRole = parse_signup_role(role)
    except ValueError:
        raise UnknownRoleError(role)

    return SignupRequirementsResponse(
        role=signup_role.value,
        required_documents=required_documents(signup_role),
        requires_branch=requires_branch(signup_role),
        max_file_mb=config.signup.max_file_mb,
    )
