from __future__ import annotations

import logging

from cvmatch.core.config.scoring import get_category_weights, get_scoring_value
from cvmatch.core.numeric import round_half_up
from cvmatch.schemas.analysis import EmbeddingBundle, TermAnalysis, TermScore, TermSuggestion
from cvmatch.schemas.keywords import CATEGORIES, KeywordSet
from cvmatch.semantic.embeddings import EmbeddingProvider
from cvmatch.semantic.vectors import cosine_similarity
from cvmatch.services.llm import fence_untrusted, json_completion

logger = logging.getLogger(__name__)

SUGGESTION_SYSTEM_PROMPT = "You are a CV optimizer. Return valid JSON."

_IMPACT_ORDER = {"negative": 0, "neutral": 1, "positive": 2}


class TermAnalyzer:
    """Scores each CV keyword against its job category and tests alternative phrasings."""

    def __init__(self, provider: EmbeddingProvider) -> None:
        self.provider = provider
        self.positive_threshold = float(get_scoring_value("term_analysis.positive_threshold", 0.7))
        self.negative_threshold = float(get_scoring_value("term_analysis.negative_threshold", 0.4))
        self.low_score_threshold = float(get_scoring_value("term_analysis.low_score_threshold", 0.6))
        self.min_improvement = int(get_scoring_value("term_analysis.min_improvement", 3))
        self.max_terms = int(get_scoring_value("term_analysis.max_terms_per_category", 15))
        self.max_suggestions = int(get_scoring_value("term_analysis.max_suggestions", 10))

    def classify(self, similarity: float) -> str:
        if similarity > self.positive_threshold:
            return "positive"
        if similarity < self.negative_threshold:
            return "negative"
        return "neutral"

    async def analyze(
        self,
        cv_keywords: KeywordSet,
        job_keywords: KeywordSet,
        job_embeddings: EmbeddingBundle,
    ) -> TermAnalysis:
        cv_flat = cv_keywords.flatten()
        job_flat = job_keywords.flatten()
        weights = get_category_weights()

        terms: list[TermScore] = []
        suggestions: list[TermSuggestion] = []
        for category in CATEGORIES:
            job_vector = job_embeddings.vector(category) or job_embeddings.full
            if not job_vector:
                continue
            for term in cv_flat.keywords(category)[: self.max_terms]:
                similarity = cosine_similarity(await self.provider.embed(term), job_vector)
                terms.append(
                    TermScore(term=term, category=category, similarity=round(similarity, 4), impact=self.classify(similarity))
                )
                if similarity < self.low_score_threshold and len(suggestions) < self.max_suggestions:
                    suggestions.extend(
                        await self.tested_suggestions(
                            term,
                            category,
                            similarity,
                            job_flat.keywords(category),
                            job_vector,
                            weights.get(category, 0.25),
                        )
                    )

        terms.sort(key=lambda item: (_IMPACT_ORDER[item.impact], item.similarity))
        suggestions.sort(key=lambda item: item.expected_overall_impact, reverse=True)
        analysis = TermAnalysis(
            terms=terms,
            suggestions=suggestions[: self.max_suggestions],
            positive_count=sum(1 for item in terms if item.impact == "positive"),
            negative_count=sum(1 for item in terms if item.impact == "negative"),
        )
        logger.info("term_analysis terms=%s suggestions=%s", len(analysis.terms), len(analysis.suggestions))
        return analysis

    async def tested_suggestions(
        self,
        term: str,
        category: str,
        current_similarity: float,
        job_terms: list[str],
        job_vector: list[float],
        category_weight: float,
    ) -> list[TermSuggestion]:
        """Ask for alternative phrasings and keep only those that measurably improve similarity."""
        user_prompt = (
            f"The candidate's CV says the term below; it matches the job only "
            f"{round_half_up(current_similarity * 100)}%.\n"
            f"{fence_untrusted('CV TERM', term)}\n"
            f"{fence_untrusted('JOB REQUIRES', ', '.join(job_terms[:10]) or 'Not specified')}\n"
            'Suggest 4 alternative phrasings that better match the job. '
            'Return JSON: {"suggestions": [{"alternative": "...", "reason": "..."}]}'
        )
        payload = await json_completion(
            system_prompt=SUGGESTION_SYSTEM_PROMPT,
            user_prompt=user_prompt,
            temperature=0.5,
            task="term_suggestions",
        )
        raw = payload.get("suggestions") if payload else None
        if not isinstance(raw, list):
            return []

        validated: list[TermSuggestion] = []
        for item in raw[:4]:
            alternative = str(item.get("alternative", "") if isinstance(item, dict) else item).strip()
            if not alternative or alternative.lower() == term.lower():
                continue
            new_similarity = cosine_similarity(await self.provider.embed(alternative), job_vector)
            improvement = round_half_up((new_similarity - current_similarity) * 100)
            if improvement < self.min_improvement:
                continue
            reason = str(item.get("reason", "")).strip() if isinstance(item, dict) else ""
            validated.append(
                TermSuggestion(
                    original_term=term,
                    suggested_term=alternative,
                    category=category,
                    current_similarity=round(current_similarity, 4),
                    improved_similarity=round(new_similarity, 4),
                    improvement=improvement,
                    expected_overall_impact=round(improvement * category_weight, 2),
                    reason=reason
                    or f"Section: {round_half_up(current_similarity * 100)}% -> {round_half_up(new_similarity * 100)}% (+{improvement}%)",
                )
            )
        return validated[:3]
