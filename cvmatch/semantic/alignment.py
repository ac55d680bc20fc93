from __future__ import annotations

from cvmatch.core.config.scoring import get_category_weights, get_scoring_value
from cvmatch.core.numeric import clamp_int, round_half_up
from cvmatch.schemas.analysis import AlignmentScores, AttentionMatrix
from cvmatch.schemas.keywords import CATEGORIES, KeywordSet


def jaccard_similarity(left: list[str], right: list[str]) -> float:
    """Case-insensitive Jaccard overlap of two keyword lists."""
    left_set = {item.strip().lower() for item in left if item.strip()}
    right_set = {item.strip().lower() for item in right if item.strip()}
    union = left_set | right_set
    if not union:
        return 0.0
    return len(left_set & right_set) / len(union)


def score_category(cv_keywords: list[str], job_keywords: list[str], semantic_similarity: float) -> int:
    """Blend lexical overlap and embedding similarity into a 0-100 category score.

    The job asking for nothing in a category is a full match; the CV offering
    nothing is no match.
    """
    if not cv_keywords:
        return int(get_scoring_value("alignment.empty_cv_score", 0))
    if not job_keywords:
        return int(get_scoring_value("alignment.empty_job_score", 100))

    lexical_weight = float(get_scoring_value("alignment.lexical_weight", 0.4))
    semantic_weight = float(get_scoring_value("alignment.semantic_weight", 0.6))
    semantic = max(0.0, min(1.0, semantic_similarity))
    combined = lexical_weight * jaccard_similarity(cv_keywords, job_keywords) + semantic_weight * semantic
    return clamp_int(round_half_up(combined * 100), 0, 100)


def overall_score(category_scores: dict[str, int]) -> int:
    weights = get_category_weights()
    total = sum(weights[category] * category_scores.get(category, 0) for category in CATEGORIES)
    return clamp_int(round_half_up(total), 0, 100)


def compute_alignment_scores(
    matrix: AttentionMatrix,
    cv_keywords: KeywordSet,
    job_keywords: KeywordSet,
) -> AlignmentScores:
    cv_flat = cv_keywords.flatten()
    job_flat = job_keywords.flatten()
    scores = {
        category: score_category(
            cv_flat.keywords(category),
            job_flat.keywords(category),
            matrix.value(category, category),
        )
        for category in CATEGORIES
    }
    return AlignmentScores(
        hard_skills=scores["hardSkills"],
        soft_skills=scores["softSkills"],
        experience=scores["experience"],
        education=scores["education"],
        overall=overall_score(scores),
    )
