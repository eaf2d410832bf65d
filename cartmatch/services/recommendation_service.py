"""Recommendation Service - Candidate matching and ranking per profile.

This module handles:
- Building a candidate set from keyword matches plus the style archetype facet
- Scoring candidates and ordering them deterministically
- Choosing a top pick and a different-brand alternative pick
- Committing the chosen items to the batch's UsageLedger

Interface Contract:
- recommend(profile, keywords, index, ledger) -> list[CatalogItem] (0-2 items)
- "No candidates" is a normal empty outcome, never an exception
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Sequence

from cartmatch.models import CatalogItem, Profile
from cartmatch.services.catalog_service import CatalogIndex, tokenize
from cartmatch.services.usage_ledger import UsageLedger, brand_key
from config import ARCHETYPE_WEIGHT, KEYWORD_WEIGHT

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoringPolicy:
    """Relevance weights. Tunable; the cap and brand rules are not."""
    keyword_weight: float = KEYWORD_WEIGHT
    archetype_weight: float = ARCHETYPE_WEIGHT


@dataclass(frozen=True)
class ScoredCandidate:
    item: CatalogItem
    score: float
    brand_load: int
    position: int

    @property
    def sort_key(self) -> tuple[float, int, int]:
        return (-self.score, self.brand_load, self.position)


class RecommendationService:
    """Service for matching one profile against the catalog."""

    MAX_PICKS = 2

    def __init__(self, policy: ScoringPolicy | None = None):
        """Initialize with an optional scoring policy.

        Args:
            policy: Ranking weights. If None, uses the configured defaults.
        """
        self.policy = policy or ScoringPolicy()

    def recommend(
        self,
        profile: Profile,
        keywords: Sequence[str],
        index: CatalogIndex,
        ledger: UsageLedger,
    ) -> list[CatalogItem]:
        """Pick up to two items for a profile and commit them to the ledger.

        Args:
            profile: Canonical profile being matched
            keywords: Normalized keywords extracted from the profile notes
            index: Catalog index for this batch
            ledger: Usage ledger for this batch (mutated in place)

        Returns:
            list[CatalogItem]: [top pick, alternative pick], either may be absent
        """
        if not profile.email:
            return []

        candidates = self.find_candidates(profile, keywords, index)
        if not candidates:
            logger.info("[match] profile=%s candidates=0", profile.email)
            return []

        ranked = self.rank(profile, keywords, candidates, index, ledger)
        eligible = [c.item for c in ranked if ledger.is_eligible(c.item.item_key)]
        picks = self.select(eligible)

        for item in picks:
            ledger.commit(item.item_key, item.brand)

        logger.info(
            "[match] profile=%s candidates=%d eligible=%d picks=%s",
            profile.email,
            len(candidates),
            len(eligible),
            [item.item_key for item in picks],
        )
        return picks

    def find_candidates(
        self, profile: Profile, keywords: Sequence[str], index: CatalogIndex
    ) -> list[CatalogItem]:
        """Keyword matches plus the archetype facet, de-duplicated in catalog order."""
        matched: list[CatalogItem] = []
        for keyword in keywords:
            matched.extend(index.items_for_keyword(keyword))
        if profile.style_archetype is not None:
            matched.extend(index.items_for_facet(profile.style_archetype.facet))

        unique = {item.item_key: item for item in matched}
        return sorted(unique.values(), key=lambda item: index.position_of(item.item_key))

    def rank(
        self,
        profile: Profile,
        keywords: Sequence[str],
        candidates: Iterable[CatalogItem],
        index: CatalogIndex,
        ledger: UsageLedger,
    ) -> list[ScoredCandidate]:
        """Order candidates by score, then brand load, then catalog order."""
        keyword_tokens: set[str] = set()
        for keyword in keywords:
            keyword_tokens.update(tokenize(keyword))
        archetype = profile.style_archetype

        scored = []
        for item in candidates:
            overlap = len(index.tokens_of(item.item_key) & keyword_tokens)
            score = self.policy.keyword_weight * overlap
            if archetype is not None and index.has_facet(item.item_key, archetype.facet):
                score += self.policy.archetype_weight
            scored.append(
                ScoredCandidate(
                    item=item,
                    score=score,
                    brand_load=ledger.brand_load(item.brand),
                    position=index.position_of(item.item_key),
                )
            )
        return sorted(scored, key=lambda c: c.sort_key)

    def select(self, eligible: Sequence[CatalogItem]) -> list[CatalogItem]:
        """Top pick plus the best remaining item from a different brand."""
        if not eligible:
            return []
        top = eligible[0]
        top_brand = brand_key(top.brand)
        for item in eligible[1:]:
            if brand_key(item.brand) != top_brand:
                return [top, item]
        return [top]

    def recommend_one(
        self, profile: Profile, keywords: Sequence[str], items: Iterable[CatalogItem]
    ) -> list[CatalogItem]:
        """Match a single profile outside of any batch (fresh ledger)."""
        return self.recommend(profile, keywords, CatalogIndex(items), UsageLedger(batch_size=1))
