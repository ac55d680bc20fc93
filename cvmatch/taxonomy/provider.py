from __future__ import annotations

from typing import Protocol


class TaxonomyProvider(Protocol):
    def categories(self) -> dict[str, dict[str, list[str]]]:
        """Return category -> subcategory -> known terms."""

    def find_terms(self, text: str, category: str) -> dict[str, list[str]]:
        """Return subcategory -> known terms of `category` mentioned in `text`."""

    def soft_skill_indicators(self) -> list[str]:
        """Return action verbs that signal soft skills in experience lines."""
