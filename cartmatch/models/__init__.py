"""Data models - Pure data structures with no business logic."""

from .catalog import CatalogItem
from .profile import AgeRange, Gender, Profile, StyleArchetype
from .recommendation import (
    BatchReport,
    BatchSummary,
    ParseWarning,
    RecommendationResult,
    ResultStatus,
)

__all__ = [
    "AgeRange",
    "Gender",
    "Profile",
    "StyleArchetype",
    "CatalogItem",
    "ParseWarning",
    "RecommendationResult",
    "ResultStatus",
    "BatchSummary",
    "BatchReport",
]
