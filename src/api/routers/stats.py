"""
Stats router.

- GET /stats - Job and trigger document counts
"""

from fastapi import APIRouter, HTTPException

from src.jobstore import JobPersistenceError

from ..schemas.jobs import StatsResponse
from .._store_state import get_job_store


router = APIRouter()


@router.get("", response_model=StatsResponse)
async def get_stats():
    """Count stored jobs and triggers."""
    store = get_job_store()

    try:
        return StatsResponse(
            job_count=store.get_number_of_jobs(),
            trigger_count=store.get_number_of_triggers(),
        )
    except JobPersistenceError as e:
        raise HTTPException(status_code=503, detail=f"Document store unavailable: {str(e)}")
