"""Cart Match bulk recommendation engine package."""

from .models import CatalogItem, Profile, RecommendationResult
from .services import BatchService, RecommendationService

__all__ = [
    "CatalogItem",
    "Profile",
    "RecommendationResult",
    "BatchService",
    "RecommendationService",
]
