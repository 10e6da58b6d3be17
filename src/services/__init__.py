"""
Services layer for the courier portal.

Contains business logic used by the web routes and the CLI.
"""

from src.services.quote_service import QuoteService, QuoteSubmission
from src.services.rate_service import InternationalRateService
from src.services.signup_service import SignupService
from src.services.tracking_service import TrackingService, TrackResult, TrackState

__all__ = [
    "InternationalRateService",
    "QuoteService",
    "QuoteSubmission",
    "SignupService",
    "TrackingService",
    "TrackResult",
    "TrackState",
]
