"""
Tests for quotation requests.
"""

import pytest
from pydantic import ValidationError

from src.pricing.models import PricingValidationError
from src.pricing.pricing_engine import PricingEngine
from src.services.quote_service import QuoteService
from src.storage.document_store import InMemoryDocumentStore
from src.utils.config_loader import QuotesConfig
from src.webapp.schemas import ParcelRequest, QuoteRequest


def make_request(**overrides) -> QuoteRequest:
    fields = {
        "weight_kg": 1.0,
        "length_cm": 10,
        "width_cm": 10,
        "height_cm": 10,
        "service_tier": "Same-day",
        "destination_region": "Other",
        "sender_name": "Aung Aung",
        "sender_phone": "09123456789",
        "sender_email": "aung@example.com",
        "pickup_address": "12 Bogyoke Rd, Yangon",
        "receiver_name": "Hla Hla",
        "receiver_phone": "09987654321",
        "destination_address": "Main St, Myitkyina",
        "notes": "Fragile",
    }
    fields.update(overrides)
    return QuoteRequest(**fields)


class TestQuoteRequestSchema:
    """Tests for request validation."""

    def test_defaults(self) -> None:
        """Test tier and region defaults."""
        parcel = ParcelRequest(weight_kg=1, length_cm=1, width_cm=1, height_cm=1)
        assert parcel.service_tier == "Standard"
        assert parcel.destination_region == "Yangon"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"weight_kg": 0},
            {"weight_kg": 200.5},
            {"length_cm": 301},
            {"sender_name": "A"},
            {"sender_phone": "123"},
            {"sender_email": "not-an-email"},
            {"notes": "x" * 501},
        ],
    )
    def test_rejects_invalid_fields(self, overrides: dict) -> None:
        """Test form limits."""
        with pytest.raises(ValidationError):
            make_request(**overrides)

    def test_blank_email_allowed(self) -> None:
        assert make_request(sender_email="").sender_email == ""
        assert make_request(sender_email=None).sender_email == ""

    def test_document_fields(self) -> None:
        """Test stored field names."""
        fields = make_request().to_document_fields()
        assert fields["serviceType"] == "Same-day"
        assert fields["destinationRegion"] == "Other"
        assert fields["weightKg"] == 1.0
        assert fields["senderEmail"] == "aung@example.com"


class TestQuoteService:
    """Tests for QuoteService."""

    @pytest.fixture
    def service(self, document_store: InMemoryDocumentStore) -> QuoteService:
        return QuoteService(PricingEngine(), document_store, QuotesConfig())

    def test_estimate(self, service: QuoteService) -> None:
        """Test 3700 × 1.8 × 1.25 = 8325 rounds to 8300."""
        assert service.estimate(make_request()).estimated_price_minor_units == 8300

    def test_submit(self, service: QuoteService, document_store: InMemoryDocumentStore) -> None:
        """Test the request is stored with its estimate."""
        submission = service.submit(make_request())

        stored = document_store.get("quotation_requests", submission.request_id)
        assert stored.exists
        assert stored.data["estimatedPriceMMK"] == 8300
        assert stored.data["chargeableWeightKg"] == 1.0
        assert stored.data["source"] == "web_public"
        assert stored.data["status"] == "new"
        assert stored.data["receiverName"] == "Hla Hla"
        assert "createdAt" in stored.data
        assert submission.result.estimated_price_minor_units == 8300

    def test_submit_unknown_region(
        self,
        service: QuoteService,
        document_store: InMemoryDocumentStore,
    ) -> None:
        """Test nothing is stored when pricing fails."""
        with pytest.raises(PricingValidationError):
            service.submit(make_request(destination_region="Atlantis"))
        assert document_store.query("quotation_requests", "source", "web_public") == []
