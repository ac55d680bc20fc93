from __future__ import annotations

import logging
from typing import Protocol

from cvmatch.core.errors import ExtractionFailure
from cvmatch.schemas.keywords import DocumentKind, KeywordSet, ParsedSections

from .keyword_filter import keep_mentioned_keywords

logger = logging.getLogger(__name__)


class Extractor(Protocol):
    async def parse(self, kind: DocumentKind, text: str) -> ParsedSections:
        """Split a CV or job description into category sections."""

    async def extract_keywords(
        self,
        kind: DocumentKind,
        sections: ParsedSections,
        source_text: str = "",
    ) -> KeywordSet:
        """Extract short keywords per category from parsed sections."""


class ResilientExtractor:
    """Primary extractor with a deterministic fallback behind one interface."""

    def __init__(self, primary: Extractor, fallback: Extractor) -> None:
        self.primary = primary
        self.fallback = fallback

    async def parse(self, kind: DocumentKind, text: str) -> ParsedSections:
        try:
            return await self.primary.parse(kind, text)
        except ExtractionFailure as exc:
            logger.warning("extraction_fallback stage=parse kind=%s code=%s: %s", kind, exc.code, exc)
            return await self.fallback.parse(kind, text)

    async def extract_keywords(
        self,
        kind: DocumentKind,
        sections: ParsedSections,
        source_text: str = "",
    ) -> KeywordSet:
        try:
            keywords = await self.primary.extract_keywords(kind, sections, source_text)
        except ExtractionFailure as exc:
            logger.warning("extraction_fallback stage=keywords kind=%s code=%s: %s", kind, exc.code, exc)
            keywords = await self.fallback.extract_keywords(kind, sections, source_text)

        if kind == "cv" and source_text:
            keywords = keep_mentioned_keywords(keywords, source_text)
        return keywords
