from __future__ import annotations

import logging
import math

from cvmatch.schemas.keywords import CATEGORIES, FlatKeywords, GroupedKeywords, KeywordSet

logger = logging.getLogger(__name__)

_STOPWORDS = {"the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by"}


def is_mentioned(keyword: str, text_lower: str) -> bool:
    """True when the keyword, or at least half of its meaningful words, appears in the text."""
    keyword_lower = keyword.strip().lower()
    if not keyword_lower:
        return False
    if keyword_lower in text_lower:
        return True

    words = [word for word in keyword_lower.split() if word not in _STOPWORDS]
    if not words:
        return False
    matches = [
        word
        for word in words
        if word in text_lower or f"{word}s" in text_lower or f"{word}ing" in text_lower
    ]
    return len(matches) >= math.ceil(len(words) * 0.5)


def keep_mentioned_keywords(keywords: KeywordSet, text: str) -> KeywordSet:
    """Drop keywords the source document never mentions."""
    text_lower = text.lower()
    if isinstance(keywords, GroupedKeywords):
        groups = {
            category: {
                sub: [term for term in terms if is_mentioned(term, text_lower)]
                for sub, terms in keywords.groups.get(category, {}).items()
            }
            for category in CATEGORIES
        }
        result: KeywordSet = GroupedKeywords(groups=groups)
    else:
        result = FlatKeywords(
            categories={
                category: [term for term in keywords.keywords(category) if is_mentioned(term, text_lower)]
                for category in CATEGORIES
            }
        )

    for category in CATEGORIES:
        before = len(keywords.keywords(category))
        after = len(result.keywords(category))
        if after < before:
            logger.info("keyword_validation category=%s kept=%s dropped=%s", category, after, before - after)
        if before and not after:
            logger.warning("keyword_validation_emptied category=%s", category)
    return result
