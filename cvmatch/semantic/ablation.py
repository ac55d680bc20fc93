from __future__ import annotations

import asyncio
import logging

from cvmatch.core.config.scoring import get_scoring_value
from cvmatch.core.errors import AblationSimulationFailure, CVMatchError
from cvmatch.core.numeric import round_half_up
from cvmatch.schemas.analysis import AblationResult, ActionableRecommendation, AlignmentScores, KeywordImpact
from cvmatch.schemas.keywords import KeywordSet

from .embeddings import EmbeddingProvider
from .group_embeddings import flat_context_text
from .vectors import cosine_similarity

logger = logging.getLogger(__name__)


def missing_job_keywords(cv_keywords: list[str], job_keywords: list[str]) -> list[str]:
    """Job keywords that no CV keyword contains (case-insensitive)."""
    cv_lower = [item.lower() for item in cv_keywords]
    return [keyword for keyword in job_keywords if not any(keyword.lower() in item for item in cv_lower)]


class AblationAnalyzer:
    """Counterfactual keyword analysis for weak categories.

    Leave-one-out measures what each CV keyword contributes; add-one-in
    measures what a missing job keyword would add.
    """

    def __init__(self, provider: EmbeddingProvider) -> None:
        self.provider = provider
        self.score_threshold = int(get_scoring_value("ablation.score_threshold", 70))
        self.min_reported_delta = int(get_scoring_value("ablation.min_reported_delta", 5))
        self.high_priority_delta = int(get_scoring_value("ablation.high_priority_delta", 15))
        self.add_delta_threshold = int(get_scoring_value("ablation.add_delta_threshold", 10))
        self.high_priority_add_delta = int(get_scoring_value("ablation.high_priority_add_delta", 20))
        self.max_add_candidates = int(get_scoring_value("ablation.max_add_candidates", 3))

    async def similarity(self, category: str, cv_keywords: list[str], job_vector: list[float]) -> float:
        if not cv_keywords:
            return 0.0
        vector = await self.provider.embed(flat_context_text(category, cv_keywords))
        return cosine_similarity(vector, job_vector)

    async def run(
        self,
        cv_keywords: KeywordSet,
        job_keywords: KeywordSet,
        scores: AlignmentScores,
    ) -> dict[str, AblationResult]:
        cv_flat = cv_keywords.flatten()
        job_flat = job_keywords.flatten()
        weak = [
            category
            for category, score in scores.by_category().items()
            if score < self.score_threshold and cv_flat.keywords(category) and job_flat.keywords(category)
        ]
        if not weak:
            return {}

        results = await asyncio.gather(
            *(self.analyze_category(category, cv_flat.keywords(category), job_flat.keywords(category)) for category in weak)
        )
        return {result.category: result for result in results}

    async def analyze_category(self, category: str, cv_keywords: list[str], job_keywords: list[str]) -> AblationResult:
        job_vector = await self.provider.embed(flat_context_text(category, job_keywords))
        original = await self.similarity(category, cv_keywords, job_vector)

        impacts: list[KeywordImpact] = []
        actions: list[ActionableRecommendation] = []
        skipped: list[str] = []

        for keyword in cv_keywords:
            without = [item for item in cv_keywords if item != keyword]
            try:
                delta = round_half_up((original - await self._simulate(category, keyword, without, job_vector)) * 100)
            except AblationSimulationFailure as exc:
                logger.warning("ablation_skip category=%s keyword=%s: %s", category, keyword, exc)
                skipped.append(keyword)
                continue
            if abs(delta) <= self.min_reported_delta:
                continue
            significance = "positive" if delta > 0 else "negative"
            impacts.append(KeywordImpact(keyword=keyword, impact_delta=delta, significance=significance))
            priority = "HIGH" if abs(delta) > self.high_priority_delta else "MEDIUM"
            if delta > 0:
                actions.append(
                    ActionableRecommendation(
                        action="KEEP",
                        keyword=keyword,
                        reason=f"This keyword adds +{delta}% to your {category} score",
                        priority=priority,
                        impact_delta=delta,
                        category=category,
                    )
                )
            else:
                actions.append(
                    ActionableRecommendation(
                        action="REPLACE",
                        keyword=keyword,
                        reason=f"This keyword reduces your {category} score by {abs(delta)}%",
                        priority=priority,
                        impact_delta=delta,
                        category=category,
                    )
                )

        for keyword in missing_job_keywords(cv_keywords, job_keywords)[: self.max_add_candidates]:
            try:
                delta = round_half_up(
                    (await self._simulate(category, keyword, [*cv_keywords, keyword], job_vector) - original) * 100
                )
            except AblationSimulationFailure as exc:
                logger.warning("ablation_skip category=%s keyword=%s: %s", category, keyword, exc)
                skipped.append(keyword)
                continue
            if delta > self.add_delta_threshold:
                actions.append(
                    ActionableRecommendation(
                        action="ADD",
                        keyword=keyword,
                        reason=f"Adding this keyword could increase your {category} score by +{delta}%",
                        priority="HIGH" if delta > self.high_priority_add_delta else "MEDIUM",
                        impact_delta=delta,
                        category=category,
                    )
                )

        logger.info(
            "ablation_category category=%s keywords=%s reported=%s actions=%s skipped=%s",
            category,
            len(cv_keywords),
            len(impacts),
            len(actions),
            len(skipped),
        )
        return AblationResult(
            category=category,
            original_similarity=round(original, 6),
            results=impacts,
            actionable_recommendations=actions,
            total_impact=sum(item.impact_delta for item in impacts),
            skipped=skipped,
        )

    async def _simulate(self, category: str, keyword: str, keywords: list[str], job_vector: list[float]) -> float:
        try:
            return await self.similarity(category, keywords, job_vector)
        except CVMatchError as exc:
            raise AblationSimulationFailure(str(exc), keyword=keyword, category=category) from exc
        except Exception as exc:  # noqa: BLE001 - one failed keyword must not end the analysis
            raise AblationSimulationFailure(f"unexpected simulation error: {exc}", keyword=keyword, category=category) from exc

