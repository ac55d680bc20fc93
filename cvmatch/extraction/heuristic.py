from __future__ import annotations

import logging
import re

from cvmatch.schemas.keywords import CATEGORIES, DocumentKind, GroupedKeywords, ParsedSections
from cvmatch.taxonomy import TaxonomyProvider, get_default_taxonomy_provider
from cvmatch.taxonomy.local_taxonomy import term_pattern

logger = logging.getLogger(__name__)

_HEADER_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("softSkills", re.compile(r"^(soft|interpersonal)\s+skills?$", re.IGNORECASE)),
    ("hardSkills", re.compile(r"^((technical|core|key)\s+)?(skills?|competenc(es|ies)|expertise)$", re.IGNORECASE)),
    ("experience", re.compile(r"^((work|professional)\s+)?experience$|^employment(\s+history)?$|^work\s+history$", re.IGNORECASE)),
    ("education", re.compile(r"^education(\s+.*)?$|^academic.*$|^qualifications?$", re.IGNORECASE)),
    ("summary", re.compile(r"^((professional\s+)?summary|objective|profile)$", re.IGNORECASE)),
]

YEAR_RANGE_RE = re.compile(r"\d{4}\s*[-–]\s*(?:\d{4}|present|current)", re.IGNORECASE)
DEGREE_RE = re.compile(r"bachelor|master|phd|mba|university|college|degree|b\.?sc|m\.?sc", re.IGNORECASE)
JOB_YEARS_RE = re.compile(r"(\d+)\+?\s*years?\s+(?:of\s+)?experience", re.IGNORECASE)
YEARS_RE = re.compile(r"\b\d+\+?\s*years?\b", re.IGNORECASE)
INSTITUTION_RE = re.compile(
    r"\b(?:[A-Z][\w&.-]*\s+){0,3}(?:University|College|Institute)(?:\s+of(?:\s+[A-Z][\w&.-]*){1,3})?"
)
REQUIREMENT_RE = re.compile(r"\b(experience|responsib|you will|design|build|develop|deliver|own)\w*", re.IGNORECASE)

MAX_KEYWORDS_PER_CATEGORY = 15


def _normalize_header(line: str) -> str:
    return line.strip().strip(":").strip("#*-= ").strip()


def _dedupe(terms: list[str]) -> list[str]:
    seen: set[str] = set()
    unique: list[str] = []
    for term in terms:
        key = term.lower()
        if key in seen:
            continue
        seen.add(key)
        unique.append(term)
    return unique


class HeuristicExtractor:
    """Header patterns plus keyword dictionaries. Never raises; may return empty categories."""

    def __init__(self, taxonomy: TaxonomyProvider | None = None) -> None:
        self.taxonomy = taxonomy or get_default_taxonomy_provider()

    async def parse(self, kind: DocumentKind, text: str) -> ParsedSections:
        return self.parse_sync(kind, text)

    async def extract_keywords(
        self,
        kind: DocumentKind,
        sections: ParsedSections,
        source_text: str = "",
    ) -> GroupedKeywords:
        return self.extract_keywords_sync(kind, sections, source_text)

    def parse_sync(self, kind: DocumentKind, text: str) -> ParsedSections:
        text = text or ""
        found = self._split_by_headers(text)
        lines = text.splitlines()

        if not found.get("hardSkills"):
            found["hardSkills"] = self._lines_with_terms(lines, "hardSkills", limit=1000)
        if not found.get("softSkills"):
            indicators = [term_pattern(word) for word in self.taxonomy.soft_skill_indicators()]
            indicator_lines = [line.strip() for line in lines if any(p.search(line) for p in indicators)]
            term_lines = self._lines_with_terms(lines, "softSkills", limit=2000)
            found["softSkills"] = "\n".join(_dedupe(indicator_lines + term_lines.splitlines()))[:2000]
        if not found.get("experience"):
            pattern = JOB_YEARS_RE if kind == "job" else YEAR_RANGE_RE
            experience_lines = [line.strip() for line in lines if pattern.search(line)]
            if kind == "job":
                experience_lines += [line.strip() for line in lines if REQUIREMENT_RE.search(line)]
            term_lines = self._lines_with_terms(lines, "experience", limit=2000).splitlines()
            found["experience"] = "\n".join(_dedupe(experience_lines + term_lines))[:2000]
        if not found.get("education"):
            found["education"] = "\n".join(line.strip() for line in lines if DEGREE_RE.search(line))[:1000]

        sections = ParsedSections(**{key: value for key, value in found.items() if key in ParsedSections.model_fields})
        logger.info(
            "heuristic_parse kind=%s sections=%s",
            kind,
            ",".join(category for category in CATEGORIES if sections.section(category)),
        )
        return sections

    def extract_keywords_sync(
        self,
        kind: DocumentKind,
        sections: ParsedSections,
        source_text: str = "",
    ) -> GroupedKeywords:
        groups: dict[str, dict[str, list[str]]] = {}
        for category in CATEGORIES:
            scope = sections.section(category)
            found = self.taxonomy.find_terms(scope, category)
            if not found and source_text:
                found = self.taxonomy.find_terms(source_text, category)
            groups[category] = found

        experience_scope = sections.experience or source_text
        years = [" ".join(match.group(0).split()) for match in YEARS_RE.finditer(experience_scope)]
        if years:
            groups["experience"]["years"] = _dedupe(years)

        education_scope = sections.education or source_text
        institutions = [" ".join(match.group(0).split()) for match in INSTITUTION_RE.finditer(education_scope)]
        if institutions:
            groups["education"]["institutions"] = _dedupe(institutions)

        return GroupedKeywords(groups={category: self._cap(groups[category]) for category in CATEGORIES})

    def _split_by_headers(self, text: str) -> dict[str, str]:
        found: dict[str, list[str]] = {}
        current: str | None = None
        for raw_line in text.splitlines():
            header = _normalize_header(raw_line)
            matched = next((name for name, pattern in _HEADER_PATTERNS if header and pattern.match(header)), None)
            if matched:
                current = matched
                found.setdefault(current, [])
                continue
            if current and raw_line.strip():
                found[current].append(raw_line.strip())
        return {name: "\n".join(lines) for name, lines in found.items() if lines}

    def _lines_with_terms(self, lines: list[str], category: str, *, limit: int) -> str:
        hits = [line.strip() for line in lines if line.strip() and self.taxonomy.find_terms(line, category)]
        return "\n".join(hits)[:limit]

    @staticmethod
    def _cap(groups: dict[str, list[str]]) -> dict[str, list[str]]:
        capped: dict[str, list[str]] = {}
        remaining = MAX_KEYWORDS_PER_CATEGORY
        seen: set[str] = set()
        for subcategory, terms in groups.items():
            kept: list[str] = []
            for term in terms:
                if remaining <= 0:
                    break
                if term.lower() in seen:
                    continue
                seen.add(term.lower())
                kept.append(term)
                remaining -= 1
            if kept:
                capped[subcategory] = kept
        return capped
