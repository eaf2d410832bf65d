"""Shopper profile data models.

Pure data structures with no business logic.
These can be safely used by any module.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class _LabelEnum(Enum):
    """Enum whose values are display labels, parsed leniently."""

    @classmethod
    def parse(cls, value: Any):
        """Return the member matching ``value`` or None if unknown/empty."""
        if value is None:
            return None
        if isinstance(value, cls):
            return value
        key = _label_key(str(value))
        if not key:
            return None
        for member in cls:
            if _label_key(member.value) == key or _label_key(member.name) == key:
                return member
        return None


def _label_key(text: str) -> str:
    return "".join(text.replace("–", "-").lower().split()).replace("_", "")


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


_TRUE_FLAGS = {"1", "true", "yes", "y", "on", "x", "checked"}


def parse_flag(value: Any) -> bool:
    """Interpret a checkbox-like upload value."""
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in _TRUE_FLAGS


class Gender(_LabelEnum):
    FEMALE = "Female"
    MALE = "Male"
    UNSPECIFIED = "Prefer not to say"


class AgeRange(_LabelEnum):
    UNDER_18 = "Under 18"
    AGE_18_24 = "18–24"
    AGE_25_30 = "25–30"
    AGE_31_40 = "31–40"
    AGE_41_50 = "41–50"
    AGE_51_60 = "51–60"
    OVER_60 = "60+"


class StyleArchetype(_LabelEnum):
    CASUAL = "Casual"
    CLASSIC = "Classic"
    MINIMALIST = "Minimalist"
    BOHEMIAN = "Bohemian"
    STREETWEAR = "Streetwear"
    ROMANTIC = "Romantic"
    EDGY = "Edgy"
    SPORTY = "Sporty"

    @property
    def facet(self) -> str:
        """Catalog tag that marks an item as belonging to this archetype."""
        return self.value.lower()


@dataclass(frozen=True)
class Profile:
    """One canonical shopper, keyed by normalized email."""
    email: str
    first_name: str = ""
    gender: Gender | None = None
    age_range: AgeRange | None = None
    style_archetype: StyleArchetype | None = None
    notes: str = ""
    marketing_consent: bool = False

    @staticmethod
    def normalize_email(email: Any) -> str:
        """Lower-case and trim an email; None becomes ''."""
        return str(email or "").strip().lower()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "email": self.email,
            "first_name": self.first_name,
            "gender": self.gender.value if self.gender else None,
            "age_range": self.age_range.value if self.age_range else None,
            "style_archetype": self.style_archetype.value if self.style_archetype else None,
            "notes": self.notes,
            "marketing_consent": self.marketing_consent,
        }

    def to_row(self) -> dict[str, str]:
        """Raw upload row that deduplicates back into this profile."""
        return {
            "Email": self.email,
            "First Name": self.first_name,
            "Gender": self.gender.value if self.gender else "",
            "Age Range": self.age_range.value if self.age_range else "",
            "Style Archetype": self.style_archetype.value if self.style_archetype else "",
            "Saves": self.notes,
            "Marketing Consent": "yes" if self.marketing_consent else "",
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Profile":
        """Create from dictionary."""
        return cls(
            email=cls.normalize_email(data.get("email")),
            first_name=_text(data.get("first_name") or data.get("firstName")),
            gender=Gender.parse(data.get("gender")),
            age_range=AgeRange.parse(data.get("age_range") or data.get("ageRange")),
            style_archetype=StyleArchetype.parse(
                data.get("style_archetype") or data.get("styleArchetype")
            ),
            notes=_text(data.get("notes") or data.get("saves")),
            marketing_consent=parse_flag(
                data.get("marketing_consent", data.get("marketingConsent", False))
            ),
        )
