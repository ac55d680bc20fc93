from fastapi import APIRouter, Header

from cvmatch.analytics.db import get_run_summary
from cvmatch.core.security import check_api_key

router = APIRouter()


@router.get("/health", summary="Health Check", description="Check the health status of the application.")
async def health_check():
    return {"status": "healthy"}


@router.get("/health/llm-runs", summary="LLM run summary", description="Counts of language model calls by outcome.")
async def llm_runs(x_api_key: str | None = Header(default=None)):
    check_api_key(x_api_key)
    return get_run_summary()
