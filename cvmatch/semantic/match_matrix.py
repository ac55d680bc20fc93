from __future__ import annotations

import logging

from cvmatch.core.config.scoring import get_scoring_value
from cvmatch.schemas.analysis import AlignmentGap, AttentionMatrix, EmbeddingBundle, GapAnalysis, TransferOpportunity
from cvmatch.schemas.keywords import CATEGORIES

from .vectors import clamp_unit, cosine_similarity

logger = logging.getLogger(__name__)


def build_attention_matrix(cv_bundle: EmbeddingBundle, job_bundle: EmbeddingBundle) -> AttentionMatrix:
    """Cosine similarity of every CV category against every job category, clamped to [0, 1].

    A pair with a missing embedding scores 0 and is recorded as a defect.
    Mismatched dimensions raise DimensionMismatch.
    """
    cells: dict[str, dict[str, float]] = {}
    defects: list[str] = []
    for cv_category in CATEGORIES:
        row: dict[str, float] = {}
        cv_vector = cv_bundle.vector(cv_category)
        for job_category in CATEGORIES:
            job_vector = job_bundle.vector(job_category)
            if cv_vector is None or job_vector is None:
                logger.warning("attention_missing_embedding cv=%s job=%s", cv_category, job_category)
                defects.append(f"{cv_category}->{job_category}")
                row[job_category] = 0.0
                continue
            row[job_category] = round(clamp_unit(cosine_similarity(cv_vector, job_vector)), 6)
        cells[cv_category] = row
    return AttentionMatrix(cells=cells, defects=defects)


def analyze_gaps(matrix: AttentionMatrix) -> GapAnalysis:
    """CV categories with no strong counterpart, and off-diagonal pairs that transfer well."""
    gap_threshold = float(get_scoring_value("insights.gap_threshold", 0.3))
    opportunity_threshold = float(get_scoring_value("insights.opportunity_threshold", 0.7))

    gaps: list[AlignmentGap] = []
    opportunities: list[TransferOpportunity] = []
    for cv_category in CATEGORIES:
        row = matrix.cells.get(cv_category, {})
        if not row:
            continue
        best_match, best_similarity = max(row.items(), key=lambda item: item[1])
        if best_similarity < gap_threshold:
            gaps.append(AlignmentGap(category=cv_category, best_match=best_match, best_similarity=best_similarity))
        for job_category, similarity in row.items():
            if job_category != cv_category and similarity > opportunity_threshold:
                opportunities.append(
                    TransferOpportunity(cv_category=cv_category, job_category=job_category, similarity=similarity)
                )
    opportunities.sort(key=lambda item: item.similarity, reverse=True)
    return GapAnalysis(gaps=gaps, opportunities=opportunities)
