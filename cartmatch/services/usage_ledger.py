"""Usage Ledger - Batch-scoped "sold out" counters.

Tracks how many times each catalog item and each brand has been recommended
in the current run. One ledger lives for exactly one batch; a new run gets a
new ledger. Counts only ever increase.
"""

from __future__ import annotations

import logging
from typing import Any

from config import SOLD_OUT_CAP

logger = logging.getLogger(__name__)


class UsageLedgerError(Exception):
    """Raised when a commit would push an item past its cap."""
    pass


def brand_key(brand: str) -> str:
    """Brands compare after trimming and casefolding ("Nike" == " nike")."""
    return (brand or "").strip().casefold()


class UsageLedger:
    """Item and brand usage counters for one batch run."""

    def __init__(self, batch_size: int = 0, cap: int = SOLD_OUT_CAP):
        if cap < 1:
            raise ValueError("cap must be at least 1")
        self.batch_size = batch_size
        self.cap = cap
        self._item_usage: dict[str, int] = {}
        self._brand_usage: dict[str, int] = {}
        # First spelling seen per brand key, for reporting
        self._brand_names: dict[str, str] = {}

    def is_eligible(self, item_key: str) -> bool:
        """True while the item has been committed fewer than ``cap`` times."""
        return self._item_usage.get(item_key, 0) < self.cap

    def brand_load(self, brand: str) -> int:
        return self._brand_usage.get(brand_key(brand), 0)

    def item_count(self, item_key: str) -> int:
        return self._item_usage.get(item_key, 0)

    def commit(self, item_key: str, brand: str) -> None:
        """Record one recommendation of ``item_key`` (and its brand).

        Raises:
            UsageLedgerError: If the item is already sold out
        """
        if not self.is_eligible(item_key):
            raise UsageLedgerError(f"Item {item_key} is sold out (cap {self.cap})")
        self._item_usage[item_key] = self._item_usage.get(item_key, 0) + 1
        key = brand_key(brand)
        self._brand_usage[key] = self._brand_usage.get(key, 0) + 1
        self._brand_names.setdefault(key, (brand or "").strip())
        if self._item_usage[item_key] == self.cap:
            logger.info("[ledger] item=%s sold out", item_key)

    def sold_out_items(self) -> list[str]:
        return [key for key, count in self._item_usage.items() if count >= self.cap]

    def brands_used(self) -> list[str]:
        return [self._brand_names[key] for key in self._brand_usage]

    def snapshot(self) -> dict[str, Any]:
        """Plain copy of the counters for reporting."""
        return {
            "item_usage": dict(self._item_usage),
            "brand_usage": {
                self._brand_names[key]: count for key, count in self._brand_usage.items()
            },
            "total_batch_size": self.batch_size,
        }
