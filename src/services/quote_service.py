"""
Quote Service.

Turns a public quotation request into a priced quotation_requests document.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from src.pricing.models import PricingResult
from src.pricing.pricing_engine import PricingEngine
from src.storage.document_store import DocumentStore
from src.utils.config_loader import QuotesConfig
from src.webapp.schemas import QuoteRequest

logger = logging.getLogger(__name__)


@dataclass
class QuoteSubmission:
    """Result of submitting a quotation request."""

    request_id: str
    result: PricingResult


class QuoteService:
    """
    Service for pricing and recording quotation requests.

    Handles:
    - Price estimation through the pricing engine
    - Writing the request with its estimate to the document store
    """

    def __init__(
        self,
        engine: PricingEngine,
        document_store: DocumentStore,
        config: QuotesConfig | None = None,
    ):
        self.engine = engine
        self.config = config or QuotesConfig()
        self._store = document_store

    def estimate(self, request: QuoteRequest) -> PricingResult:
        return self.engine.estimate(request.to_pricing_input())

    def submit(self, request: QuoteRequest) -> QuoteSubmission:
        """
        Price a quotation request and store it.

        Args:
            request: Validated quotation request.

        Returns:
            QuoteSubmission: Generated request id and the estimate.

        Raises:
            PricingValidationError: If the parcel fails engine validation.
            DocumentStoreError: If the request cannot be stored.
        """
        result = self.estimate(request)

        document = {
            **request.to_document_fields(),
            "volumetricWeightKg": result.volumetric_weight_kg,
            "chargeableWeightKg": result.chargeable_weight_kg,
            "estimatedPriceMMK": result.estimated_price_minor_units,
            "source": self.config.source,
            "status": self.config.initial_status,
            "createdAt": datetime.utcnow().isoformat(),
        }
        request_id = self._store.add(self.config.collection, document)
        logger.info(
            f"Quotation request {request_id} recorded: "
            f"{result.estimated_price_minor_units} {result.currency}"
        )
        return QuoteSubmission(request_id=request_id, result=result)
