"""Batch Service - Sequential bulk recommendation runs.

This module handles:
- Driving one batch: dedupe -> (per profile) keywords -> match -> commit
- Absorbing per-profile failures into degraded results
- Computing run statistics from the final UsageLedger

Profiles are processed strictly one after another. Each profile's ledger
commit happens before the next profile starts, so which profile gets a scarce
item depends only on upload order.

Interface Contract:
- BatchProcessor(catalog_items, keyword_client=...).run(profile_rows) -> BatchReport
- BatchService().run(profile_rows, catalog_rows) -> BatchReport
- Exactly one RecommendationResult per canonical profile, always
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterable

from cartmatch.models import (
    BatchReport,
    BatchSummary,
    CatalogItem,
    ParseWarning,
    Profile,
    RecommendationResult,
    ResultStatus,
)
from cartmatch.services.catalog_service import CatalogIndex, CatalogService
from cartmatch.services.csv_service import read_rows
from cartmatch.services.keyword_service import (
    KeywordExtractor,
    KeywordService,
    RateLimitedKeywordClient,
)
from cartmatch.services.profile_service import ProfileService
from cartmatch.services.recommendation_service import RecommendationService
from cartmatch.services.usage_ledger import UsageLedger
from config import KEYWORD_CALL_DELAY, SOLD_OUT_CAP

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, Profile], None]


class BatchStateError(Exception):
    """Raised on an invalid batch state transition."""
    pass


class BatchState(Enum):
    """Lifecycle of one batch run. Transitions only move forward."""
    IDLE = "idle"
    DEDUPLICATING = "deduplicating"
    PROCESSING = "processing"
    COMPLETED = "completed"


_ALLOWED = {
    BatchState.IDLE: {BatchState.DEDUPLICATING},
    BatchState.DEDUPLICATING: {BatchState.PROCESSING, BatchState.COMPLETED},
    BatchState.PROCESSING: {BatchState.COMPLETED},
    BatchState.COMPLETED: set(),
}


class BatchProcessor:
    """Runs a single batch against one catalog. Single use."""

    def __init__(
        self,
        catalog_items: Iterable[CatalogItem],
        *,
        keyword_client: KeywordExtractor,
        recommender: RecommendationService | None = None,
        profile_service: ProfileService | None = None,
        cap: int = SOLD_OUT_CAP,
        progress: ProgressCallback | None = None,
    ):
        self.index = CatalogIndex(catalog_items)
        self.keyword_client = keyword_client
        self.recommender = recommender or RecommendationService()
        self.profile_service = profile_service or ProfileService()
        self.cap = cap
        self.progress = progress

        self.state = BatchState.IDLE
        self.current = 0
        self.total = 0
        self.ledger: UsageLedger | None = None

    def _transition(self, new_state: BatchState) -> None:
        if new_state not in _ALLOWED[self.state]:
            raise BatchStateError(f"Cannot move batch from {self.state.value} to {new_state.value}")
        logger.debug("[batch] state %s -> %s", self.state.value, new_state.value)
        self.state = new_state

    def run(self, profile_rows: Iterable[dict[str, Any]]) -> BatchReport:
        """Process every canonical profile in upload order.

        Args:
            profile_rows: Raw profile rows (deduplicated here)

        Returns:
            BatchReport: One result per canonical profile plus run summary

        Raises:
            BatchStateError: If this processor has already run
        """
        self._transition(BatchState.DEDUPLICATING)
        dedup = self.profile_service.deduplicate(profile_rows)
        profiles = dedup.profiles

        self.total = len(profiles)
        self.ledger = UsageLedger(batch_size=self.total, cap=self.cap)
        results: list[RecommendationResult] = []

        if profiles:
            self._transition(BatchState.PROCESSING)
            for i, profile in enumerate(profiles):
                self.current = i
                result = self._process_profile(profile)
                results.append(result)
                self.current = i + 1
                logger.info(
                    "[batch] %d/%d profile=%s status=%s picks=%d",
                    i + 1,
                    self.total,
                    profile.email,
                    result.status.value,
                    len(result.recommendations),
                )
                if self.progress is not None:
                    self.progress(i + 1, self.total, profile)

        self._transition(BatchState.COMPLETED)
        summary = self.summarize(results, dedup.warnings)
        logger.info(
            "[batch] completed profiles=%d unique_brands=%d sold_out=%d degraded=%d",
            summary.total_profiles,
            summary.unique_brands_used,
            summary.sold_out_items,
            summary.degraded_profiles,
        )
        return BatchReport(results=results, summary=summary, warnings=list(dedup.warnings))

    def _process_profile(self, profile: Profile) -> RecommendationResult:
        """Keywords, match and commit for one profile; never raises."""
        try:
            keywords: list[str] = []
            reason = ""
            try:
                keywords = self.keyword_client.extract(profile.notes)
            except Exception as e:
                reason = f"keyword extraction failed: {e}"
                logger.warning("[batch] profile=%s %s", profile.email, reason)

            picks = self.recommender.recommend(profile, keywords, self.index, self.ledger)
            if reason:
                return RecommendationResult.degraded(profile, reason, picks, keywords)
            return RecommendationResult.ok(profile, picks, keywords)
        except Exception as e:
            logger.error("[batch] profile=%s failed: %s", profile.email, e, exc_info=True)
            return RecommendationResult.degraded(profile, f"unexpected error: {e}")

    def summarize(
        self, results: list[RecommendationResult], warnings: Iterable[ParseWarning] = ()
    ) -> BatchSummary:
        """Run statistics; ledger-derived counts come from final ledger state."""
        ledger = self.ledger or UsageLedger(cap=self.cap)
        return BatchSummary(
            total_profiles=len(results),
            recommended_profiles=sum(1 for r in results if r.recommendations),
            degraded_profiles=sum(1 for r in results if r.status is ResultStatus.DEGRADED),
            sold_out_items=len(ledger.sold_out_items()),
            unique_brands_used=len(ledger.brands_used()),
            parse_warnings=len(list(warnings)),
        )


class BatchService:
    """Service wiring catalog loading, keyword client and batch processing."""

    def __init__(
        self,
        keyword_client: KeywordExtractor | None = None,
        recommender: RecommendationService | None = None,
        *,
        call_delay: float = KEYWORD_CALL_DELAY,
        cap: int = SOLD_OUT_CAP,
    ):
        """Initialize with optional dependencies.

        Args:
            keyword_client: Keyword extractor. If None, a rate-limited
                KeywordService using the default LLM.
            recommender: Matching engine. If None, uses default policy.
            call_delay: Pacing for the default keyword client
            cap: Per-item recommendation cap for each run
        """
        self._keyword_client = keyword_client
        self._call_delay = call_delay
        self.recommender = recommender or RecommendationService()
        self.catalog_service = CatalogService()
        self.cap = cap

    @property
    def keyword_client(self) -> KeywordExtractor:
        """Lazy load keyword client."""
        if self._keyword_client is None:
            self._keyword_client = RateLimitedKeywordClient(KeywordService(), self._call_delay)
        return self._keyword_client

    def run(
        self,
        profile_rows: Iterable[dict[str, Any]],
        catalog_rows: Iterable[dict[str, Any]],
        *,
        progress: ProgressCallback | None = None,
    ) -> BatchReport:
        """Run one batch from raw profile and catalog rows.

        A fresh UsageLedger is created for every call.
        """
        catalog = self.catalog_service.parse_rows(catalog_rows)
        processor = BatchProcessor(
            catalog.items,
            keyword_client=self.keyword_client,
            recommender=self.recommender,
            cap=self.cap,
            progress=progress,
        )
        report = processor.run(profile_rows)
        report.warnings = catalog.warnings + report.warnings
        report.summary.parse_warnings = len(report.warnings)
        return report

    def run_files(
        self,
        profiles_path: Path,
        catalog_path: Path,
        *,
        progress: ProgressCallback | None = None,
    ) -> BatchReport:
        """Run one batch from two CSV sheets.

        Raises:
            CsvServiceError: If either sheet cannot be read (before any work)
        """
        profile_rows = read_rows(profiles_path)
        catalog_rows = read_rows(catalog_path)
        return self.run(profile_rows, catalog_rows, progress=progress)
