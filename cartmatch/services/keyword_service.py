"""Keyword Service - Shopping intent extraction from free-text notes.

This module handles:
- Asking the LLM for a short list of search keywords per profile
- Normalizing the answer (lower-case, de-duplicated, bounded length)
- Pacing successive calls so a batch does not trip provider quotas

Interface Contract:
- extract(text) -> list[str] (0..MAX_KEYWORDS keywords)
- All failures raise KeywordServiceError; the batch decides how to degrade
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, Protocol

from config import KEYWORD_CALL_DELAY, MAX_KEYWORDS

logger = logging.getLogger(__name__)


class KeywordServiceError(Exception):
    """Raised when keyword extraction fails."""
    pass


class KeywordExtractor(Protocol):
    def extract(self, text: str) -> list[str]:
        ...


def normalize_keywords(raw: Any, limit: int = MAX_KEYWORDS) -> list[str]:
    """Clean a raw keyword list: strings only, trimmed, lower-cased, unique."""
    if not isinstance(raw, list):
        raise KeywordServiceError(f"Expected a list of keywords, got {type(raw).__name__}")
    keywords: list[str] = []
    for value in raw:
        if not isinstance(value, str):
            continue
        keyword = " ".join(value.lower().split()).strip(" .,;:!?\"'")
        if keyword and keyword not in keywords:
            keywords.append(keyword)
        if len(keywords) >= limit:
            break
    return keywords


class KeywordService:
    """Service for turning profile notes into search keywords."""

    def __init__(self, llm_service=None, *, max_keywords: int = MAX_KEYWORDS):
        """Initialize with optional LLM service dependency.

        Args:
            llm_service: LLM service for extraction. If None, uses default.
            max_keywords: Upper bound on returned keywords
        """
        self._llm = llm_service
        self.max_keywords = max_keywords

    @property
    def llm(self):
        """Lazy load LLM service."""
        if self._llm is None:
            from cartmatch.services.llm_service import LLMService
            self._llm = LLMService.get_instance()
        return self._llm

    def extract(self, text: str) -> list[str]:
        """Extract search keywords from a shopper's notes.

        Args:
            text: Free-text notes ("saves") for one profile

        Returns:
            list[str]: Normalized keywords, most relevant first

        Raises:
            KeywordServiceError: If the LLM call or its response is unusable
        """
        cleaned = (text or "").strip()
        if not cleaned:
            return []

        prompt = self._build_prompt(cleaned)
        try:
            response = self.llm.call(prompt, json_mode=True)
        except Exception as e:
            raise KeywordServiceError(f"Keyword extraction failed: {e}") from e
        return self._parse_keywords(response)

    def _build_prompt(self, text: str) -> str:
        """Build prompt for keyword extraction."""
        return f'''Extract shopping search keywords from the shopper notes below.

RULES:
1. Return at most {self.max_keywords} keywords, most important first
2. Prefer product types, colours, materials, occasions and styles
3. Each keyword is one or two lowercase words
4. Ignore names, greetings and anything that is not a shopping intent

NOTES:
{text}

Return a JSON object with:
- keywords: array of strings

Return ONLY the JSON object, no additional text.'''

    def _parse_keywords(self, response: str) -> list[str]:
        """Parse LLM response into a normalized keyword list."""
        content = (response or "").strip()
        if content.startswith("```"):
            content = content.strip("`")
            if content.lower().startswith("json"):
                content = content[4:]
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise KeywordServiceError(f"Invalid JSON response: {e}") from e
        if isinstance(data, dict):
            data = data.get("keywords", [])
        return normalize_keywords(data, self.max_keywords)


class RateLimitedKeywordClient:
    """Keyword extractor wrapper that spaces successive calls by ``delay``.

    Usage:
        client = RateLimitedKeywordClient(KeywordService(), delay=0.1)
        keywords = client.extract("green midi dress for a garden party")
    """

    def __init__(
        self,
        extractor: KeywordExtractor,
        delay: float = KEYWORD_CALL_DELAY,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if delay < 0:
            raise ValueError("delay must not be negative")
        self.extractor = extractor
        self.delay = delay
        self._clock = clock
        self._sleep = sleep
        self._last_call: float | None = None

    def extract(self, text: str) -> list[str]:
        """Wait out the remaining delay, then delegate to the extractor."""
        if self._last_call is not None and self.delay > 0:
            remaining = self.delay - (self._clock() - self._last_call)
            if remaining > 0:
                self._sleep(remaining)
        try:
            return self.extractor.extract(text)
        finally:
            self._last_call = self._clock()
