from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import Field, field_validator, model_validator

from .base import CamelModel
from .keywords import CATEGORIES, KeywordSet, ParsedSections

AnalysisStatus = Literal["processing", "completed", "failed"]
Significance = Literal["positive", "negative"]
ActionType = Literal["KEEP", "REPLACE", "ADD"]
Priority = Literal["HIGH", "MEDIUM"]
TermImpactLabel = Literal["positive", "negative", "neutral"]

DEFAULT_JOB_TITLE = "Untitled Position"
GENERIC_FAILURE_MESSAGE = "Failed to analyze CV. Please try again."


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class EmbeddingBundle(CamelModel):
    vectors: dict[str, list[float]] = Field(default_factory=dict)
    full: list[float] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_dimensions(self) -> "EmbeddingBundle":
        sizes = {len(vector) for vector in self.vectors.values() if vector}
        if self.full:
            sizes.add(len(self.full))
        if len(sizes) > 1:
            raise ValueError(f"embedding vectors must share one dimension, got {sorted(sizes)}")
        return self

    @property
    def dimension(self) -> int:
        if self.full:
            return len(self.full)
        for vector in self.vectors.values():
            if vector:
                return len(vector)
        return 0

    def vector(self, category: str) -> list[float] | None:
        vector = self.vectors.get(category)
        return vector if vector else None


class AttentionMatrix(CamelModel):
    cells: dict[str, dict[str, float]] = Field(default_factory=dict)
    defects: list[str] = Field(default_factory=list)

    def value(self, cv_category: str, job_category: str) -> float:
        return float(self.cells.get(cv_category, {}).get(job_category, 0.0))


class AlignmentScores(CamelModel):
    hard_skills: int = Field(ge=0, le=100)
    soft_skills: int = Field(ge=0, le=100)
    experience: int = Field(ge=0, le=100)
    education: int = Field(ge=0, le=100)
    overall: int = Field(ge=0, le=100)

    def by_category(self) -> dict[str, int]:
        return {
            "hardSkills": self.hard_skills,
            "softSkills": self.soft_skills,
            "experience": self.experience,
            "education": self.education,
        }


class ATSCheckResult(CamelModel):
    score: int = Field(ge=0, le=20)
    passed: bool
    details: dict[str, Any] = Field(default_factory=dict)


class ATSReport(CamelModel):
    score: int = Field(ge=0, le=100)
    issues: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    explanations: dict[str, str] = Field(default_factory=dict)
    checks: dict[str, ATSCheckResult] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _score_is_sum_of_checks(self) -> "ATSReport":
        if self.checks and sum(check.score for check in self.checks.values()) != self.score:
            raise ValueError("ATS score must equal the sum of its check scores")
        return self


class KeywordImpact(CamelModel):
    keyword: str
    impact_delta: int
    significance: Significance


class ActionableRecommendation(CamelModel):
    action: ActionType
    keyword: str
    reason: str
    priority: Priority
    impact_delta: int
    category: str


class AblationResult(CamelModel):
    category: str
    original_similarity: float
    results: list[KeywordImpact] = Field(default_factory=list)
    actionable_recommendations: list[ActionableRecommendation] = Field(default_factory=list)
    total_impact: int = 0
    skipped: list[str] = Field(default_factory=list)


class TermScore(CamelModel):
    term: str
    category: str
    similarity: float
    impact: TermImpactLabel


class TermSuggestion(CamelModel):
    original_term: str
    suggested_term: str
    category: str
    current_similarity: float
    improved_similarity: float
    improvement: int
    expected_overall_impact: float
    reason: str = ""


class TermAnalysis(CamelModel):
    terms: list[TermScore] = Field(default_factory=list)
    suggestions: list[TermSuggestion] = Field(default_factory=list)
    positive_count: int = 0
    negative_count: int = 0


class AlignmentGap(CamelModel):
    category: str
    best_match: str
    best_similarity: float


class TransferOpportunity(CamelModel):
    cv_category: str
    job_category: str
    similarity: float


class GapAnalysis(CamelModel):
    gaps: list[AlignmentGap] = Field(default_factory=list)
    opportunities: list[TransferOpportunity] = Field(default_factory=list)


class AnalysisRequest(CamelModel):
    cv_text: str = Field(default="", max_length=50000)
    job_description_text: str = Field(default="", max_length=50000)
    job_title: str = Field(default=DEFAULT_JOB_TITLE, max_length=200)
    user_id: str = Field(default="anonymous", min_length=1, max_length=200)

    @field_validator("job_title", mode="before")
    @classmethod
    def _default_title(cls, value: object) -> str:
        text = str(value or "").strip()
        return text or DEFAULT_JOB_TITLE


class AnalysisRecord(CamelModel):
    analysis_id: str
    user_id: str = "anonymous"
    job_title: str = DEFAULT_JOB_TITLE
    cv_text: str
    job_description_text: str
    status: AnalysisStatus = "processing"
    error: str | None = None
    error_detail: str | None = None
    cv_sections: ParsedSections | None = None
    job_sections: ParsedSections | None = None
    cv_keywords: KeywordSet | None = None
    job_keywords: KeywordSet | None = None
    cv_embeddings: EmbeddingBundle | None = None
    job_embeddings: EmbeddingBundle | None = None
    attention_matrix: AttentionMatrix | None = None
    scores: AlignmentScores | None = None
    ats_report: ATSReport | None = None
    ablation: dict[str, AblationResult] = Field(default_factory=dict)
    ranked_actions: list[ActionableRecommendation] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    term_analysis: TermAnalysis | None = None
    gap_analysis: GapAnalysis | None = None
    validation_warnings: list[str] = Field(default_factory=list)
    processing_time_ms: int | None = None
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)

    def mark_completed(self, processing_time_ms: int) -> None:
        if self.status != "processing":
            raise ValueError(f"analysis {self.analysis_id} is already {self.status}")
        self.status = "completed"
        self.processing_time_ms = processing_time_ms
        self.updated_at = _utc_now()

    def mark_failed(self, detail: str, processing_time_ms: int | None = None) -> None:
        if self.status != "processing":
            raise ValueError(f"analysis {self.analysis_id} is already {self.status}")
        self.status = "failed"
        self.error = GENERIC_FAILURE_MESSAGE
        self.error_detail = detail
        self.processing_time_ms = processing_time_ms
        self.updated_at = _utc_now()


class AnalysisAccepted(CamelModel):
    analysis_id: str
    status: AnalysisStatus
    progress_url: str
    stream_url: str


class AnalysisSummary(CamelModel):
    analysis_id: str
    job_title: str
    status: AnalysisStatus
    overall_score: int | None = None
    ats_score: int | None = None
    created_at: datetime


__all__ = [
    "CATEGORIES",
    "AblationResult",
    "ActionableRecommendation",
    "AlignmentGap",
    "AlignmentScores",
    "AnalysisAccepted",
    "AnalysisRecord",
    "AnalysisRequest",
    "AnalysisSummary",
    "ATSCheckResult",
    "ATSReport",
    "AttentionMatrix",
    "EmbeddingBundle",
    "GapAnalysis",
    "KeywordImpact",
    "TermAnalysis",
    "TermScore",
    "TermSuggestion",
    "TransferOpportunity",
]
