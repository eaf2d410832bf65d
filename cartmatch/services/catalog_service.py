"""Catalog Service - Catalog loading and the in-memory candidate index.

This module handles:
- Mapping partner feed rows (own sheets, AWIN, Rakuten) onto CatalogItem
- Building a read-only CatalogIndex for facet and keyword lookups

Interface Contract:
- parse_rows(rows) -> CatalogLoadResult
- CatalogIndex(items).items_for_facet(facet) -> list[CatalogItem]
- CatalogIndex(items).items_for_keyword(keyword) -> list[CatalogItem]
- An empty catalog is valid; lookups simply return no candidates
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator

from cartmatch.models import CatalogItem, ParseWarning
from cartmatch.services.csv_service import lookup, row_number_of

logger = logging.getLogger(__name__)

UNKNOWN_BRAND = "Unknown"

KEY_ALIASES = (
    "sku", "item key", "item id", "product id", "id",
    "aw_product_id", "merchant_product_id",
    "item url", "product url", "url", "link", "aw_deep_link",
)
BRAND_ALIASES = ("brand", "brand_name", "merchant_name", "merchant", "manufacturer")
NAME_ALIASES = ("name", "product name", "product_name", "title", "original name")
IMAGE_ALIASES = ("image url", "image", "image_link", "merchant_image_url", "aw_image_url")
URL_ALIASES = ("item url", "product url", "url", "link", "deep link", "aw_deep_link")
TAG_ALIASES = (
    "tags", "category", "categories", "category_name", "merchant_category",
    "style", "styles", "product type",
)

_TAG_SPLIT = re.compile(r"[,;|>/]")
_WORD = re.compile(r"[a-z0-9]+")
STOPWORDS = frozenset(
    "a an and or the for with of in on to by from my me i im looking love loves "
    "want need some any new item items".split()
)


class CatalogServiceError(Exception):
    """Raised when catalog data cannot be indexed."""
    pass


def _stem(token: str) -> str:
    if len(token) > 4 and token.endswith("ies"):
        return token[:-3] + "y"
    if token.endswith("sses"):
        return token[:-2]
    if len(token) > 3 and token.endswith("s") and not token.endswith("ss"):
        return token[:-1]
    return token


def tokenize(text: str) -> list[str]:
    """Lower-case, stemmed word tokens with stopwords removed, order kept."""
    tokens = []
    for word in _WORD.findall(str(text or "").lower()):
        if len(word) < 2 or word in STOPWORDS:
            continue
        token = _stem(word)
        if token not in tokens:
            tokens.append(token)
    return tokens


def split_tags(value: str) -> list[str]:
    return [t.strip().lower() for t in _TAG_SPLIT.split(value or "") if t.strip()]


@dataclass
class CatalogLoadResult:
    """Items accepted from a catalog sheet plus skipped-row warnings."""
    items: list[CatalogItem] = field(default_factory=list)
    warnings: list[ParseWarning] = field(default_factory=list)


class CatalogService:
    """Service for loading catalog rows into CatalogItem objects."""

    def parse_rows(self, rows: Iterable[dict[str, Any]]) -> CatalogLoadResult:
        """Convert raw catalog rows, skipping malformed and duplicate entries."""
        result = CatalogLoadResult()
        seen: set[str] = set()

        for index, row in enumerate(rows, start=1):
            row_number = row_number_of(row, index)
            key = lookup(row, KEY_ALIASES)
            if not key:
                result.warnings.append(
                    ParseWarning("catalog", row_number, "missing item key, row skipped")
                )
                continue
            if key in seen:
                result.warnings.append(
                    ParseWarning("catalog", row_number, f"duplicate item key {key!r}, row skipped")
                )
                continue
            seen.add(key)

            tags: list[str] = []
            for alias in TAG_ALIASES:
                for tag in split_tags(lookup(row, (alias,))):
                    if tag not in tags:
                        tags.append(tag)

            result.items.append(
                CatalogItem(
                    item_key=key,
                    brand=lookup(row, BRAND_ALIASES) or UNKNOWN_BRAND,
                    name=lookup(row, NAME_ALIASES),
                    tags=tuple(tags),
                    image_url=lookup(row, IMAGE_ALIASES),
                    item_url=lookup(row, URL_ALIASES),
                )
            )

        for warning in result.warnings:
            logger.warning("[catalog] %s", warning)
        logger.info("[catalog] items=%d warnings=%d", len(result.items), len(result.warnings))
        return result


class CatalogIndex:
    """Read-only lookup structure over one batch's catalog.

    Items keep their insertion order; every lookup returns items in that
    order so ranking ties resolve deterministically.
    """

    def __init__(self, items: Iterable[CatalogItem]):
        self._items: list[CatalogItem] = []
        self._positions: dict[str, int] = {}
        self._tokens: dict[str, frozenset[str]] = {}
        self._facets: dict[str, frozenset[str]] = {}
        self._by_facet: dict[str, list[int]] = defaultdict(list)
        self._by_token: dict[str, list[int]] = defaultdict(list)

        for item in items:
            if item.item_key in self._positions:
                logger.warning("[catalog] duplicate item key %s ignored by index", item.item_key)
                continue
            position = len(self._items)
            self._items.append(item)
            self._positions[item.item_key] = position

            facets = set(item.tags)
            for tag in item.tags:
                facets.update(tokenize(tag))
            self._facets[item.item_key] = frozenset(facets)
            for facet in facets:
                self._by_facet[facet].append(position)

            tokens = set(tokenize(item.name)) | set(tokenize(item.brand))
            for tag in item.tags:
                tokens.update(tokenize(tag))
            self._tokens[item.item_key] = frozenset(tokens)
            for token in tokens:
                self._by_token[token].append(position)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[CatalogItem]:
        return iter(self._items)

    def _collect(self, positions: Iterable[int]) -> list[CatalogItem]:
        return [self._items[p] for p in sorted(set(positions))]

    def items_for_facet(self, facet: str) -> list[CatalogItem]:
        """All items tagged with a style/category facet."""
        key = (facet or "").strip().lower()
        if not key:
            return []
        positions = list(self._by_facet.get(key, ()))
        for token in tokenize(key):
            positions.extend(self._by_facet.get(token, ()))
        return self._collect(positions)

    def items_for_keyword(self, keyword: str) -> list[CatalogItem]:
        """All items whose name, brand or tags share a token with the keyword."""
        positions: list[int] = []
        for token in tokenize(keyword):
            positions.extend(self._by_token.get(token, ()))
        return self._collect(positions)

    def has_facet(self, item_key: str, facet: str) -> bool:
        facets = self._facets.get(item_key)
        key = (facet or "").strip().lower()
        if not facets or not key:
            return False
        return key in facets or any(token in facets for token in tokenize(key))

    def get(self, item_key: str) -> CatalogItem | None:
        position = self._positions.get(item_key)
        return None if position is None else self._items[position]

    def brand_of(self, item_key: str) -> str:
        item = self.get(item_key)
        if item is None:
            raise CatalogServiceError(f"Unknown item key: {item_key}")
        return item.brand

    def position_of(self, item_key: str) -> int:
        return self._positions[item_key]

    def tokens_of(self, item_key: str) -> frozenset[str]:
        return self._tokens.get(item_key, frozenset())
