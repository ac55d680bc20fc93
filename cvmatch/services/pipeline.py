from __future__ import annotations

import asyncio
import json
import logging
import time
import uuid

from cvmatch.core.analysis_store import AnalysisStore
from cvmatch.core.config import settings
from cvmatch.core.errors import CVMatchError, InputValidationError
from cvmatch.extraction import Extractor
from cvmatch.features.ats_checker import check_ats_friendliness
from cvmatch.schemas.analysis import AnalysisRecord, AnalysisRequest
from cvmatch.schemas.keywords import CATEGORIES
from cvmatch.semantic.ablation import AblationAnalyzer
from cvmatch.semantic.alignment import compute_alignment_scores
from cvmatch.semantic.embeddings import CachedEmbedder, EmbeddingProvider
from cvmatch.semantic.group_embeddings import build_embedding_bundle
from cvmatch.semantic.match_matrix import analyze_gaps, build_attention_matrix
from cvmatch.services.progress import ProgressTracker
from cvmatch.services.recommendations import generate_recommendations, identify_strengths_weaknesses, rank_actions
from cvmatch.services.term_analysis import TermAnalyzer
from cvmatch.services.validation import validate_complete_analysis

logger = logging.getLogger(__name__)


def new_analysis_id() -> str:
    return uuid.uuid4().hex


def validate_request(request: AnalysisRequest) -> None:
    """Reject inputs too short to analyse, before any provider is called."""
    if len(request.job_description_text.strip()) < settings.min_job_chars:
        raise InputValidationError(
            f"Job description must be at least {settings.min_job_chars} characters.",
            field="jobDescriptionText",
        )
    if len(request.cv_text.strip()) < settings.min_cv_chars:
        raise InputValidationError(
            f"CV text must be at least {settings.min_cv_chars} characters.",
            field="cvText",
        )


class AnalysisPipeline:
    """Runs one CV/job analysis end to end and reports progress at each stage boundary."""

    def __init__(
        self,
        *,
        extractor: Extractor,
        embedding_provider: EmbeddingProvider,
        tracker: ProgressTracker,
        store: AnalysisStore,
        provider_timeout_s: float | None = None,
    ) -> None:
        self.extractor = extractor
        self.embedding_provider = embedding_provider
        self.tracker = tracker
        self.store = store
        self.provider_timeout_s = provider_timeout_s if provider_timeout_s is not None else settings.provider_timeout_s

    async def analyze(self, request: AnalysisRequest, analysis_id: str | None = None) -> AnalysisRecord:
        validate_request(request)

        analysis_id = analysis_id or new_analysis_id()
        record = AnalysisRecord(
            analysis_id=analysis_id,
            user_id=request.user_id,
            job_title=request.job_title,
            cv_text=request.cv_text,
            job_description_text=request.job_description_text,
        )
        started = time.perf_counter()
        self.tracker.init(analysis_id)
        logger.info(json.dumps({"event": "analysis_start", "analysis_id": analysis_id, "user_id": request.user_id}))

        try:
            await self._run(record)
            self._persist_completed(record, started)
        except asyncio.CancelledError:
            self._fail(record, "analysis cancelled", started)
            raise
        except CVMatchError as exc:
            self._fail(record, f"{exc.code}: {exc}", started)
            return record
        except Exception as exc:  # noqa: BLE001 - any stage failure ends the run as failed
            logger.exception("analysis_unexpected_error analysis_id=%s", analysis_id)
            self._fail(record, f"unexpected_error: {exc}", started)
            return record

        self.tracker.complete(
            analysis_id,
            "complete",
            {"analysisId": analysis_id, "overall": record.scores.overall if record.scores else None},
        )
        logger.info(
            json.dumps(
                {
                    "event": "analysis_complete",
                    "analysis_id": analysis_id,
                    "overall": record.scores.overall if record.scores else None,
                    "ats": record.ats_report.score if record.ats_report else None,
                    "processing_time_ms": record.processing_time_ms,
                }
            )
        )
        return record

    async def _run(self, record: AnalysisRecord) -> None:
        analysis_id = record.analysis_id
        tracker = self.tracker
        embedder = CachedEmbedder(self.embedding_provider, timeout_s=self.provider_timeout_s)

        tracker.advance(analysis_id, "upload")
        tracker.complete(analysis_id, "upload", {"cvChars": len(record.cv_text), "jobChars": len(record.job_description_text)})

        record.ats_report = check_ats_friendliness(record.cv_text)
        tracker.complete(analysis_id, "ats", {"atsScore": record.ats_report.score, "issues": len(record.ats_report.issues)})

        record.cv_sections, record.job_sections = await asyncio.gather(
            self.extractor.parse("cv", record.cv_text),
            self.extractor.parse("job", record.job_description_text),
        )
        tracker.complete(analysis_id, "parsing")

        record.cv_keywords, record.job_keywords = await asyncio.gather(
            self.extractor.extract_keywords("cv", record.cv_sections, record.cv_text),
            self.extractor.extract_keywords("job", record.job_sections, record.job_description_text),
        )
        tracker.complete(
            analysis_id,
            "keywords",
            {
                "cv": {c: len(record.cv_keywords.keywords(c)) for c in CATEGORIES},
                "job": {c: len(record.job_keywords.keywords(c)) for c in CATEGORIES},
            },
        )

        record.cv_embeddings, record.job_embeddings = await asyncio.gather(
            build_embedding_bundle(record.cv_keywords, embedder, source_text=record.cv_text, sections=record.cv_sections),
            build_embedding_bundle(
                record.job_keywords,
                embedder,
                source_text=record.job_description_text,
                sections=record.job_sections,
            ),
        )
        tracker.complete(analysis_id, "embeddings", {"dimension": record.cv_embeddings.dimension})

        record.attention_matrix = build_attention_matrix(record.cv_embeddings, record.job_embeddings)
        record.scores = compute_alignment_scores(record.attention_matrix, record.cv_keywords, record.job_keywords)
        report = validate_complete_analysis(
            cv_sections=record.cv_sections,
            job_sections=record.job_sections,
            cv_keywords=record.cv_keywords,
            job_keywords=record.job_keywords,
            cv_embeddings=record.cv_embeddings,
            job_embeddings=record.job_embeddings,
            matrix=record.attention_matrix,
            scores=record.scores,
        )
        record.validation_warnings = report.warnings
        record.gap_analysis = analyze_gaps(record.attention_matrix)
        tracker.complete(analysis_id, "similarity", {"scores": record.scores.to_wire()})

        record.ablation = await AblationAnalyzer(embedder).run(record.cv_keywords, record.job_keywords, record.scores)
        record.ranked_actions = rank_actions(record.ablation)
        record.strengths, record.weaknesses = identify_strengths_weaknesses(record.scores)
        record.recommendations = await generate_recommendations(record.cv_keywords, record.job_keywords, record.scores)
        tracker.complete(
            analysis_id,
            "recommendations",
            {"actions": len(record.ranked_actions), "recommendations": len(record.recommendations)},
        )

        record.term_analysis = await TermAnalyzer(embedder).analyze(
            record.cv_keywords,
            record.job_keywords,
            record.job_embeddings,
        )
        tracker.complete(analysis_id, "suggestions", {"suggestions": len(record.term_analysis.suggestions)})

    def _persist_completed(self, record: AnalysisRecord, started: float) -> None:
        """Persist a completed copy before marking the live record, so a store error can still fail the run."""
        processing_time_ms = int((time.perf_counter() - started) * 1000)
        completed = record.model_copy()
        completed.mark_completed(processing_time_ms)
        self.store.create(completed)
        record.mark_completed(processing_time_ms)

    def _fail(self, record: AnalysisRecord, detail: str, started: float) -> None:
        record.mark_failed(detail, int((time.perf_counter() - started) * 1000))
        logger.error(json.dumps({"event": "analysis_failed", "analysis_id": record.analysis_id, "detail": detail}))
        try:
            self.store.create(record)
        except Exception:  # noqa: BLE001 - the terminal progress event must still go out
            logger.exception("analysis_failed_persist_error analysis_id=%s", record.analysis_id)
        self.tracker.fail(record.analysis_id, record.error or "Analysis failed")
