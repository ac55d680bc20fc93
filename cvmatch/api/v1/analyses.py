from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, status

from cvmatch.core.config import settings
from cvmatch.core.errors import InputValidationError
from cvmatch.core.rate_limit import analysis_rate_limit
from cvmatch.core.security import require_api_key
from cvmatch.schemas.analysis import AnalysisAccepted, AnalysisRequest, AnalysisSummary
from cvmatch.services.pipeline import new_analysis_id, validate_request

router = APIRouter(dependencies=[Depends(require_api_key)])

_HEAVY_FIELDS = {"cv_embeddings", "job_embeddings"}


def _raise_input_http_error(exc: InputValidationError) -> None:
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"message": str(exc), "field": exc.field, "code": exc.code},
    ) from exc


@router.post("/analyses", response_model=AnalysisAccepted, status_code=status.HTTP_202_ACCEPTED)
@analysis_rate_limit()
async def create_analysis(request: Request, payload: AnalysisRequest, background_tasks: BackgroundTasks):
    try:
        validate_request(payload)
    except InputValidationError as exc:
        _raise_input_http_error(exc)

    analysis_id = new_analysis_id()
    request.app.state.tracker.init(analysis_id)
    background_tasks.add_task(request.app.state.pipeline.analyze, payload, analysis_id)
    return AnalysisAccepted(
        analysis_id=analysis_id,
        status="processing",
        progress_url=f"/v1/progress/{analysis_id}",
        stream_url=f"/v1/progress/{analysis_id}/stream",
    )


@router.get("/analyses/{analysis_id}")
async def get_analysis(request: Request, analysis_id: str, include_embeddings: bool = Query(default=False, alias="includeEmbeddings")):
    record = request.app.state.store.find_by_id(analysis_id)
    if record is None:
        if analysis_id in request.app.state.tracker:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Analysis is still processing.")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Analysis not found.")
    exclude = None if include_embeddings else _HEAVY_FIELDS
    return record.model_dump(mode="json", by_alias=True, exclude=exclude)


@router.get("/analyses", response_model=list[AnalysisSummary])
async def list_analyses(
    request: Request,
    user_id: str = Query(alias="userId", min_length=1, max_length=200),
    limit: int = Query(default=settings.history_limit, ge=1, le=50),
):
    records = request.app.state.store.find_by_user(user_id, limit=limit)
    return [
        AnalysisSummary(
            analysis_id=record.analysis_id,
            job_title=record.job_title,
            status=record.status,
            overall_score=record.scores.overall if record.scores else None,
            ats_score=record.ats_report.score if record.ats_report else None,
            created_at=record.created_at,
        )
        for record in records
    ]
