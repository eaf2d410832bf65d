"""Profile Service - Raw upload rows to canonical shopper profiles.

This module handles:
- Mapping loosely-labelled sheet columns onto Profile fields
- Merging rows that share an email into one canonical profile
- Reporting malformed rows as warnings instead of failing the batch

Interface Contract:
- deduplicate(rows) -> DedupResult (profiles in order of first appearance)
- Input defects never raise; they become ParseWarning entries
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from cartmatch.models import AgeRange, Gender, ParseWarning, Profile, StyleArchetype
from cartmatch.models.profile import parse_flag
from cartmatch.services.csv_service import lookup, row_number_of

logger = logging.getLogger(__name__)

NOTES_SEPARATOR = " | "

EMAIL_ALIASES = ("email", "email address", "e-mail")
FIRST_NAME_ALIASES = ("first name", "firstName", "first_name", "name")
GENDER_ALIASES = ("gender",)
AGE_RANGE_ALIASES = ("age range", "ageRange", "age")
STYLE_ALIASES = ("style archetype", "styleArchetype", "style")
NOTES_ALIASES = ("saves", "notes", "what are you looking for", "looking for", "intent")
CONSENT_ALIASES = ("marketing consent", "marketingConsent", "consent", "opt in")


@dataclass
class DedupResult:
    """Canonical profiles plus the warnings collected while merging."""
    profiles: list[Profile] = field(default_factory=list)
    warnings: list[ParseWarning] = field(default_factory=list)


@dataclass
class _Draft:
    """Mutable accumulator for one email while rows are merged."""
    email: str
    first_name: str = ""
    gender: Gender | None = None
    age_range: AgeRange | None = None
    style_archetype: StyleArchetype | None = None
    notes: list[str] = field(default_factory=list)
    marketing_consent: str = ""

    def absorb(self, first_name, gender, age_range, style_archetype, notes, consent) -> None:
        # First non-empty value wins; later rows only fill gaps
        self.first_name = self.first_name or first_name
        self.gender = self.gender or gender
        self.age_range = self.age_range or age_range
        self.style_archetype = self.style_archetype or style_archetype
        self.marketing_consent = self.marketing_consent or consent
        if notes:
            self.notes.append(notes)

    def build(self) -> Profile:
        return Profile(
            email=self.email,
            first_name=self.first_name,
            gender=self.gender,
            age_range=self.age_range,
            style_archetype=self.style_archetype,
            notes=NOTES_SEPARATOR.join(self.notes),
            marketing_consent=parse_flag(self.marketing_consent),
        )


class ProfileService:
    """Service for turning upload rows into canonical profiles."""

    def deduplicate(self, rows: Iterable[dict[str, Any]]) -> DedupResult:
        """Merge raw rows into one profile per normalized email.

        Args:
            rows: Raw sheet rows in upload order

        Returns:
            DedupResult: Profiles in order of first appearance, plus warnings
        """
        drafts: dict[str, _Draft] = {}
        warnings: list[ParseWarning] = []
        row_count = 0

        # Row numbers are 1-based data rows (header excluded)
        for index, row in enumerate(rows, start=1):
            row_count = index
            row_number = row_number_of(row, index)
            email = Profile.normalize_email(lookup(row, EMAIL_ALIASES))
            if not email:
                warnings.append(ParseWarning("profiles", row_number, "missing email, row skipped"))
                continue
            if "@" not in email:
                warnings.append(
                    ParseWarning("profiles", row_number, f"invalid email {email!r}, row skipped")
                )
                continue

            gender = self._parse_enum(Gender, row, GENDER_ALIASES, row_number, warnings)
            age_range = self._parse_enum(AgeRange, row, AGE_RANGE_ALIASES, row_number, warnings)
            style = self._parse_enum(StyleArchetype, row, STYLE_ALIASES, row_number, warnings)

            draft = drafts.get(email)
            if draft is None:
                draft = drafts[email] = _Draft(email=email)
            draft.absorb(
                lookup(row, FIRST_NAME_ALIASES),
                gender,
                age_range,
                style,
                lookup(row, NOTES_ALIASES),
                lookup(row, CONSENT_ALIASES),
            )

        for warning in warnings:
            logger.warning("[dedup] %s", warning)

        profiles = [draft.build() for draft in drafts.values()]
        logger.info(
            "[dedup] rows=%d profiles=%d warnings=%d",
            row_count,
            len(profiles),
            len(warnings),
        )
        return DedupResult(profiles=profiles, warnings=warnings)

    def _parse_enum(self, enum_cls, row, aliases, row_number, warnings):
        raw = lookup(row, aliases)
        if not raw:
            return None
        value = enum_cls.parse(raw)
        if value is None:
            warnings.append(
                ParseWarning("profiles", row_number, f"unknown {enum_cls.__name__} {raw!r} ignored")
            )
        return value
