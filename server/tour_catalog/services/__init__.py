"""Service layer package."""

from .guide_lookup import GuideLookup
from .query import DEFAULT_QUERY_OPTIONS, QueryTimer, TourQueryOptions, apply_visibility
from .review_service import ReviewService
from .tour_service import TourService
from .user_service import UserService
from .validation import validate_request

__all__ = [
    "DEFAULT_QUERY_OPTIONS",
    "GuideLookup",
    "QueryTimer",
    "ReviewService",
    "TourQueryOptions",
    "TourService",
    "UserService",
    "apply_visibility",
    "validate_request",
]
