from __future__ import annotations

import asyncio
import logging

from cvmatch.schemas.analysis import EmbeddingBundle
from cvmatch.schemas.keywords import CATEGORIES, GroupedKeywords, KeywordSet, ParsedSections

from .embeddings import EmbeddingProvider

logger = logging.getLogger(__name__)

# "{terms}" is replaced by the comma-joined keywords of the subcategory.
SENTENCE_TEMPLATES: dict[str, dict[str, str]] = {
    "hardSkills": {
        "languages": "Proficient in {terms} programming languages",
        "frameworks": "Experienced with {terms} frameworks",
        "databases": "Database expertise includes {terms}",
        "cloud": "Cloud technologies: {terms}",
        "tools": "Utilizes {terms} development tools",
    },
    "softSkills": {
        "leadership": "Leadership capabilities: {terms}",
        "communication": "Strong {terms} communication skills",
        "collaboration": "Collaborative approach includes {terms}",
        "problemSolving": "Problem-solving through {terms}",
        "traits": "Personal traits: {terms}",
    },
    "experience": {
        "roles": "Professional roles include {terms}",
        "achievements": "Key achievements: {terms}",
        "projects": "Project experience in {terms}",
        "domains": "Industry experience: {terms}",
        "metrics": "Experience metrics: {terms}",
        "years": "Experience level: {terms}",
    },
    "education": {
        "degrees": "Educational background: {terms}",
        "certifications": "Professional certifications: {terms}",
        "specializations": "Specialized in {terms}",
        "institutions": "Studied at {terms}",
        "skills": "Academic skills: {terms}",
    },
}

FLAT_TEMPLATES: dict[str, str] = {
    "hardSkills": "Technical skills: {terms}",
    "softSkills": "Soft skills: {terms}",
    "experience": "Professional experience: {terms}",
    "education": "Education and training: {terms}",
}

EMPTY_CATEGORY_TEXT = "none"


def grouped_context_text(category: str, groups: dict[str, list[str]]) -> str:
    sentences: list[str] = []
    templates = SENTENCE_TEMPLATES.get(category, {})
    for subcategory, terms in groups.items():
        if not terms:
            continue
        joined = ", ".join(terms)
        template = templates.get(subcategory)
        sentences.append(template.format(terms=joined) if template else f"{subcategory}: {joined}")
    return ". ".join(sentences)


def flat_context_text(category: str, terms: list[str]) -> str:
    if not terms:
        return ""
    template = FLAT_TEMPLATES.get(category, "{terms}")
    return template.format(terms=", ".join(terms))


def category_context_text(
    category: str,
    keywords: KeywordSet,
    sections: ParsedSections | None = None,
) -> str:
    """Sentence(s) that describe one category; falls back to section text, then 'none'."""
    if isinstance(keywords, GroupedKeywords):
        text = grouped_context_text(category, keywords.groups.get(category, {}))
    else:
        text = flat_context_text(category, keywords.keywords(category))
    if text:
        return text
    if sections is not None and sections.section(category).strip():
        return sections.section(category).strip()
    return EMPTY_CATEGORY_TEXT


async def build_embedding_bundle(
    keywords: KeywordSet,
    provider: EmbeddingProvider,
    *,
    source_text: str,
    sections: ParsedSections | None = None,
) -> EmbeddingBundle:
    """Embed each category's context sentences plus the full document, concurrently."""
    texts = [category_context_text(category, keywords, sections) for category in CATEGORIES]
    results = await asyncio.gather(
        *(provider.embed(text) for text in texts),
        provider.embed(source_text),
    )
    vectors = dict(zip(CATEGORIES, results[: len(CATEGORIES)]))
    bundle = EmbeddingBundle(vectors=vectors, full=results[-1])
    logger.info("embedding_bundle_ready dimension=%s categories=%s", bundle.dimension, len(vectors))
    return bundle
