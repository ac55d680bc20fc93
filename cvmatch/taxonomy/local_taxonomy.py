from __future__ import annotations

import json
import re
from pathlib import Path

from .provider import TaxonomyProvider


def term_pattern(term: str) -> re.Pattern[str]:
    """Case-insensitive match of a term not embedded in a longer word."""
    return re.compile(rf"(?<![a-z0-9]){re.escape(term.lower())}(?![a-z0-9])", re.IGNORECASE)


class LocalTaxonomy(TaxonomyProvider):
    def __init__(self, keywords_path: str | Path | None = None) -> None:
        path = Path(keywords_path) if keywords_path else Path(__file__).with_name("keywords.json")
        raw = self._load(path)
        self._indicators = [str(item).lower() for item in raw.pop("soft_skill_indicators", [])]
        self._categories: dict[str, dict[str, list[str]]] = {
            str(category): {str(sub): [str(term) for term in terms] for sub, terms in groups.items()}
            for category, groups in raw.items()
        }
        self._patterns = {
            term: term_pattern(term)
            for groups in self._categories.values()
            for terms in groups.values()
            for term in terms
        }

    @staticmethod
    def _load(path: Path) -> dict:
        with path.open("r", encoding="utf-8") as handle:
            raw = json.load(handle)
        if not isinstance(raw, dict):
            raise RuntimeError(f"Invalid keyword taxonomy '{path}': expected a top-level mapping.")
        return raw

    def categories(self) -> dict[str, dict[str, list[str]]]:
        return {category: {sub: list(terms) for sub, terms in groups.items()} for category, groups in self._categories.items()}

    def find_terms(self, text: str, category: str) -> dict[str, list[str]]:
        found: dict[str, list[str]] = {}
        if not text:
            return found
        for subcategory, terms in self._categories.get(category, {}).items():
            hits = [term for term in terms if self._patterns[term].search(text)]
            if hits:
                found[subcategory] = hits
        return found

    def soft_skill_indicators(self) -> list[str]:
        return list(self._indicators)
