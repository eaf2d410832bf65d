"""Catalog item data model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class CatalogItem:
    """A single product from a partner feed. Read-only for a whole batch."""
    item_key: str  # SKU or product URL
    brand: str
    name: str = ""
    tags: tuple[str, ...] = ()
    image_url: str = ""
    item_url: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "item_key": self.item_key,
            "brand": self.brand,
            "name": self.name,
            "tags": list(self.tags),
            "image_url": self.image_url,
            "item_url": self.item_url,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CatalogItem":
        """Create from dictionary."""
        return cls(
            item_key=data.get("item_key", ""),
            brand=data.get("brand", "Unknown"),
            name=data.get("name", ""),
            tags=tuple(t.lower() for t in data.get("tags", [])),
            image_url=data.get("image_url", ""),
            item_url=data.get("item_url", ""),
        )
