from __future__ import annotations

import logging
from dataclasses import dataclass, field

from cvmatch.core.config.scoring import get_scoring_value
from cvmatch.core.errors import CompletenessViolation
from cvmatch.schemas.analysis import AlignmentScores, AttentionMatrix, EmbeddingBundle
from cvmatch.schemas.keywords import KeywordSet, ParsedSections

logger = logging.getLogger(__name__)


@dataclass
class ValidationReport:
    problems: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.problems


def required_categories() -> list[str]:
    return list(get_scoring_value("validation.required_categories", ["hardSkills", "softSkills", "experience"]))


def optional_categories() -> list[str]:
    return list(get_scoring_value("validation.optional_categories", ["education"]))


def _check_sections(report: ValidationReport, label: str, sections: ParsedSections | None) -> None:
    if sections is None:
        report.problems.append(f"{label} sections are missing")
        return
    for category in required_categories():
        if not sections.section(category).strip():
            report.problems.append(f"{label} section '{category}' is empty")
    for category in optional_categories():
        if not sections.section(category).strip():
            report.warnings.append(f"{label} section '{category}' is empty")


def _check_keywords(report: ValidationReport, label: str, keywords: KeywordSet | None) -> None:
    if keywords is None:
        report.problems.append(f"{label} keywords are missing")
        return
    for category in required_categories():
        if keywords.is_empty(category):
            report.problems.append(f"{label} keywords for '{category}' are empty")
    for category in optional_categories():
        if keywords.is_empty(category):
            report.warnings.append(f"{label} keywords for '{category}' are empty")


def _check_embeddings(report: ValidationReport, label: str, bundle: EmbeddingBundle | None) -> None:
    if bundle is None:
        report.problems.append(f"{label} embeddings are missing")
        return
    for category in required_categories():
        if bundle.vector(category) is None:
            report.problems.append(f"{label} embedding for '{category}' is missing")
    if not bundle.full:
        report.problems.append(f"{label} full-document embedding is missing")
    for category in optional_categories():
        if bundle.vector(category) is None:
            report.warnings.append(f"{label} embedding for '{category}' is missing")


def _check_matrix(report: ValidationReport, matrix: AttentionMatrix | None) -> None:
    if matrix is None:
        report.problems.append("attention matrix is missing")
        return
    required = required_categories()
    for cv_category in required:
        row = matrix.cells.get(cv_category)
        if row is None:
            report.problems.append(f"attention matrix row '{cv_category}' is missing")
            continue
        for job_category in required:
            value = row.get(job_category)
            if value is None:
                report.problems.append(f"attention matrix cell '{cv_category}->{job_category}' is missing")
            elif not 0.0 <= value <= 1.0:
                report.problems.append(f"attention matrix cell '{cv_category}->{job_category}' is out of range: {value}")
    for defect in matrix.defects:
        cv_category, _, job_category = defect.partition("->")
        if cv_category in required and job_category in required:
            report.problems.append(f"attention matrix cell '{defect}' was computed without embeddings")
        else:
            report.warnings.append(f"attention matrix cell '{defect}' was computed without embeddings")


def _check_scores(report: ValidationReport, scores: AlignmentScores | None) -> None:
    if scores is None:
        report.problems.append("alignment scores are missing")
        return
    values = scores.by_category()
    values["overall"] = scores.overall
    for name in [*required_categories(), "overall"]:
        value = values.get(name)
        if not isinstance(value, int) or isinstance(value, bool):
            report.problems.append(f"score '{name}' is not a number")
        elif not 0 <= value <= 100:
            report.problems.append(f"score '{name}' is out of range: {value}")


def validate_complete_analysis(
    *,
    cv_sections: ParsedSections | None,
    job_sections: ParsedSections | None,
    cv_keywords: KeywordSet | None,
    job_keywords: KeywordSet | None,
    cv_embeddings: EmbeddingBundle | None,
    job_embeddings: EmbeddingBundle | None,
    matrix: AttentionMatrix | None,
    scores: AlignmentScores | None,
) -> ValidationReport:
    """Gate before results are exposed: raises CompletenessViolation listing every problem found."""
    report = ValidationReport()
    _check_sections(report, "CV", cv_sections)
    _check_sections(report, "Job", job_sections)
    _check_keywords(report, "CV", cv_keywords)
    _check_keywords(report, "Job", job_keywords)
    _check_embeddings(report, "CV", cv_embeddings)
    _check_embeddings(report, "Job", job_embeddings)
    _check_matrix(report, matrix)
    _check_scores(report, scores)

    for warning in report.warnings:
        logger.warning("analysis_validation_warning %s", warning)
    if not report.is_valid:
        logger.error("analysis_validation_failed problems=%s", len(report.problems))
        raise CompletenessViolation(report.problems, warnings=report.warnings)
    return report
