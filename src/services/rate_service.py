"""
International Rate Service.

Loads per-country air cargo rates from the document store and prices
international parcels against them.
"""

import logging

from src.pricing.models import InternationalRate, ParcelDimensions, PricingResult, PricingValidationError
from src.pricing.pricing_engine import PricingEngine
from src.storage.document_store import DocumentStore

logger = logging.getLogger(__name__)


class InternationalRateService:
    """
    Service for the international shipping calculator.

    Rates are read on every call so edits to the rate table show up
    immediately.
    """

    def __init__(self, engine: PricingEngine, document_store: DocumentStore):
        self.engine = engine
        self.collection = engine.tariff.international_collection
        self._store = document_store

    def list_rates(self) -> list[InternationalRate]:
        """
        Read the rate table, sorted by country.

        Documents with a missing country or an invalid rate are skipped.

        Raises:
            DocumentStoreError: If the collection cannot be read.
        """
        rates = []
        for snapshot in self._store.list_documents(self.collection):
            try:
                rates.append(InternationalRate.from_document(snapshot.data))
            except PricingValidationError as e:
                logger.warning(f"Skipping rate document {snapshot.doc_id}: {e}")
        return sorted(rates, key=lambda rate: rate.country_name)

    def estimate(
        self,
        actual_weight_kg: float,
        dimensions: ParcelDimensions,
        country: str,
    ) -> PricingResult:
        """
        Price a parcel to a destination country.

        Raises:
            PricingValidationError: On invalid input or an unlisted country.
            DocumentStoreError: If the rate table cannot be read.
        """
        return self.engine.estimate_international(
            actual_weight_kg, dimensions, country, self.list_rates()
        )
