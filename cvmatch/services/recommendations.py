from __future__ import annotations

import logging

from cvmatch.core.config.scoring import get_category_weights, get_scoring_value
from cvmatch.schemas.analysis import AblationResult, ActionableRecommendation, AlignmentScores
from cvmatch.schemas.keywords import CATEGORIES, KeywordSet
from cvmatch.services.llm import fence_untrusted, json_completion

logger = logging.getLogger(__name__)

_CATEGORY_LABELS = {
    "hardSkills": "Hard Skills",
    "softSkills": "Soft Skills",
    "experience": "Experience",
    "education": "Education",
}

_INSIGHTS: dict[str, tuple[str, str]] = {
    "hardSkills": ("Strong technical skills match", "Technical skills need improvement"),
    "softSkills": ("Excellent soft skills presentation", "Soft skills could be more prominent"),
    "experience": ("Experience level aligns well with requirements", "Experience level may not meet requirements"),
    "education": ("Educational background is relevant", "Educational qualifications need emphasis"),
}

_FALLBACK_ADVICE = {
    "hardSkills": "Add more specific technical skills mentioned in the job description",
    "softSkills": "Highlight leadership experiences and team collaboration",
    "experience": "Emphasize relevant work experience and quantify achievements",
    "education": "Ensure your education section is prominent and detailed",
}

RECOMMENDATION_SYSTEM_PROMPT = (
    "You are a professional CV consultant. Give specific, tailored advice. Return only valid JSON."
)

RECOMMENDATION_INSTRUCTIONS = """Compare what the job REQUIRES with what the CV HAS and write 5-7 specific recommendations.

Only suggest:
1. Skills the job requires that the CV does not mention
2. Ways to rephrase existing content to match the job's language
3. Quantification of existing achievements
4. Specific gaps between requirements and the CV

Never suggest adding something the CV already mentions, and avoid vague advice such as "add more skills".

Return JSON: {"recommendations": ["...", "..."]}
"""

_PRIORITY_ORDER = {"HIGH": 0, "MEDIUM": 1}


def identify_strengths_weaknesses(scores: AlignmentScores) -> tuple[list[str], list[str]]:
    strength_threshold = int(get_scoring_value("insights.strength_threshold", 70))
    weakness_threshold = int(get_scoring_value("insights.weakness_threshold", 50))
    strengths: list[str] = []
    weaknesses: list[str] = []
    for category, score in scores.by_category().items():
        strength, weakness = _INSIGHTS[category]
        if score >= strength_threshold:
            strengths.append(strength)
        elif score < weakness_threshold:
            weaknesses.append(weakness)
    return strengths, weaknesses


def rank_actions(ablation: dict[str, AblationResult]) -> list[ActionableRecommendation]:
    """All ablation actions, HIGH priority first, then by absolute impact, then category weight."""
    weights = get_category_weights()
    actions = [action for result in ablation.values() for action in result.actionable_recommendations]
    return sorted(
        actions,
        key=lambda action: (
            _PRIORITY_ORDER[action.priority],
            -abs(action.impact_delta),
            -weights.get(action.category, 0.0),
            action.keyword.lower(),
        ),
    )


def fallback_recommendations(scores: AlignmentScores) -> list[str]:
    threshold = int(get_scoring_value("insights.recommendation_threshold", 70))
    return [
        _FALLBACK_ADVICE[category]
        for category, score in scores.by_category().items()
        if score < threshold
    ]


def _keyword_lines(keywords: KeywordSet, empty_label: str) -> str:
    flat = keywords.flatten()
    return "\n".join(
        f"{_CATEGORY_LABELS[category]}: {', '.join(flat.keywords(category)) or empty_label}"
        for category in CATEGORIES
    )


async def generate_recommendations(
    cv_keywords: KeywordSet,
    job_keywords: KeywordSet,
    scores: AlignmentScores,
) -> list[str]:
    """LLM-written recommendations; score-based advice when the model is unavailable."""
    threshold = int(get_scoring_value("insights.recommendation_threshold", 70))
    score_lines = "\n".join(
        f"- {_CATEGORY_LABELS[category]}: {score}%{' (NEEDS IMPROVEMENT)' if score < threshold else ''}"
        for category, score in scores.by_category().items()
    )
    user_prompt = (
        f"{RECOMMENDATION_INSTRUCTIONS}\n"
        f"{fence_untrusted('JOB REQUIRES', _keyword_lines(job_keywords, 'Not specified'))}\n"
        f"{fence_untrusted('CV HAS', _keyword_lines(cv_keywords, 'None listed'))}\n"
        f"SCORES:\n{score_lines}\n- Overall: {scores.overall}%"
    )
    payload = await json_completion(
        system_prompt=RECOMMENDATION_SYSTEM_PROMPT,
        user_prompt=user_prompt,
        temperature=0.7,
        task="recommendations",
    )
    items = payload.get("recommendations") if payload else None
    if isinstance(items, list):
        recommendations = [str(item).strip() for item in items if str(item).strip()]
        if recommendations:
            logger.info("recommendations_generated source=llm count=%s", len(recommendations))
            return recommendations[:7]

    recommendations = fallback_recommendations(scores)
    logger.info("recommendations_generated source=fallback count=%s", len(recommendations))
    return recommendations
