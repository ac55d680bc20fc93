from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, field_validator

Category = Literal["hardSkills", "softSkills", "experience", "education"]
DocumentKind = Literal["cv", "job"]

CATEGORIES: tuple[str, ...] = ("hardSkills", "softSkills", "experience", "education")


def _clean_terms(values: object) -> list[str]:
    if not isinstance(values, (list, tuple)):
        return []
    terms: list[str] = []
    for value in values:
        if value is None:
            continue
        text = " ".join(str(value).split())
        if text:
            terms.append(text)
    return terms


class ParsedSections(BaseModel):
    hardSkills: str = ""
    softSkills: str = ""
    experience: str = ""
    education: str = ""
    summary: str = ""

    def section(self, category: str) -> str:
        return str(getattr(self, category, "") or "")


class FlatKeywords(BaseModel):
    kind: Literal["flat"] = "flat"
    categories: dict[Category, list[str]] = Field(default_factory=dict)

    @field_validator("categories", mode="before")
    @classmethod
    def _fill_categories(cls, value: object) -> dict[str, list[str]]:
        source = value if isinstance(value, dict) else {}
        return {category: _clean_terms(source.get(category)) for category in CATEGORIES}

    def flatten(self) -> FlatKeywords:
        return self

    def keywords(self, category: str) -> list[str]:
        return list(self.categories.get(category, []))

    def is_empty(self, category: str) -> bool:
        return not self.categories.get(category)


class GroupedKeywords(BaseModel):
    kind: Literal["grouped"] = "grouped"
    groups: dict[Category, dict[str, list[str]]] = Field(default_factory=dict)

    @field_validator("groups", mode="before")
    @classmethod
    def _fill_groups(cls, value: object) -> dict[str, dict[str, list[str]]]:
        source = value if isinstance(value, dict) else {}
        filled: dict[str, dict[str, list[str]]] = {}
        for category in CATEGORIES:
            raw = source.get(category)
            if isinstance(raw, dict):
                filled[category] = {str(sub): _clean_terms(terms) for sub, terms in raw.items()}
            elif isinstance(raw, list):
                # A bare list under a grouped category is kept as a single unnamed group.
                filled[category] = {"general": _clean_terms(raw)}
            else:
                filled[category] = {}
        return filled

    def flatten(self) -> FlatKeywords:
        return FlatKeywords(
            categories={
                category: [term for terms in self.groups.get(category, {}).values() for term in terms]
                for category in CATEGORIES
            }
        )

    def keywords(self, category: str) -> list[str]:
        return self.flatten().keywords(category)

    def is_empty(self, category: str) -> bool:
        return not self.keywords(category)


KeywordSet = Annotated[Union[FlatKeywords, GroupedKeywords], Field(discriminator="kind")]
