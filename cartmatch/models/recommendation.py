"""Recommendation data models.

Pure data structures for per-profile results and batch reports.
"""

from __future__ import annotations

from dataclasses import dataclass, field as dataclass_field
from enum import Enum
from typing import Any

from .catalog import CatalogItem
from .profile import Profile


class ResultStatus(Enum):
    """Outcome of one profile inside a batch."""
    OK = "ok"
    DEGRADED = "degraded"


@dataclass(frozen=True)
class ParseWarning:
    """A non-fatal input defect (row skipped or value ignored)."""
    source: str  # "profiles" | "catalog"
    row_number: int
    message: str

    def __str__(self) -> str:
        return f"{self.source} row {self.row_number}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"source": self.source, "row_number": self.row_number, "message": self.message}


@dataclass(frozen=True)
class RecommendationResult:
    """One profile paired with its 0-2 picks (top, alternative)."""
    profile: Profile
    recommendations: tuple[CatalogItem, ...] = ()
    keywords: tuple[str, ...] = ()
    status: ResultStatus = ResultStatus.OK
    reason: str = ""

    @classmethod
    def ok(cls, profile: Profile, recommendations, keywords=()) -> "RecommendationResult":
        return cls(profile, tuple(recommendations), tuple(keywords))

    @classmethod
    def degraded(
        cls, profile: Profile, reason: str, recommendations=(), keywords=()
    ) -> "RecommendationResult":
        return cls(
            profile,
            tuple(recommendations),
            tuple(keywords),
            status=ResultStatus.DEGRADED,
            reason=reason,
        )

    @property
    def top_pick(self) -> CatalogItem | None:
        return self.recommendations[0] if self.recommendations else None

    @property
    def alternative_pick(self) -> CatalogItem | None:
        return self.recommendations[1] if len(self.recommendations) > 1 else None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "profile": self.profile.to_dict(),
            "recommendations": [item.to_dict() for item in self.recommendations],
            "keywords": list(self.keywords),
            "status": self.status.value,
            "reason": self.reason,
        }


@dataclass
class BatchSummary:
    """Run-level counters derived from the results and the final ledger."""
    total_profiles: int = 0
    recommended_profiles: int = 0
    degraded_profiles: int = 0
    sold_out_items: int = 0
    unique_brands_used: int = 0
    parse_warnings: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "total_profiles": self.total_profiles,
            "recommended_profiles": self.recommended_profiles,
            "degraded_profiles": self.degraded_profiles,
            "sold_out_items": self.sold_out_items,
            "unique_brands_used": self.unique_brands_used,
            "parse_warnings": self.parse_warnings,
        }


@dataclass
class BatchReport:
    """Ordered results of one batch run plus its summary."""
    results: list[RecommendationResult] = dataclass_field(default_factory=list)
    summary: BatchSummary = dataclass_field(default_factory=BatchSummary)
    warnings: list[ParseWarning] = dataclass_field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "results": [r.to_dict() for r in self.results],
            "summary": self.summary.to_dict(),
            "warnings": [w.to_dict() for w in self.warnings],
        }
