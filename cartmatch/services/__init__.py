"""Service layer - Business logic modules.

Each service module has a clear interface and can be developed/tested independently.
"""

from .batch_service import BatchProcessor, BatchService, BatchState
from .catalog_service import CatalogIndex, CatalogService
from .keyword_service import KeywordService, RateLimitedKeywordClient
from .llm_service import LLMService
from .profile_service import ProfileService
from .recommendation_service import RecommendationService, ScoringPolicy
from .usage_ledger import UsageLedger

__all__ = [
    "BatchProcessor",
    "BatchService",
    "BatchState",
    "CatalogIndex",
    "CatalogService",
    "KeywordService",
    "RateLimitedKeywordClient",
    "LLMService",
    "ProfileService",
    "RecommendationService",
    "ScoringPolicy",
    "UsageLedger",
]
