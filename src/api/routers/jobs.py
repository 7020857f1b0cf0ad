"""
Jobs router for job store inspection.

- GET /jobs/{group}/{name} - Get a stored job definition
- DELETE /jobs/{group}/{name} - Remove a job definition
- GET /jobs/{group}/{name}/triggers - Triggers referencing the job
"""

from fastapi import APIRouter, HTTPException

from src.jobstore import JobDetail, JobKey, JobPersistenceError

from ..schemas.jobs import JobDeleteResponse, JobResponse
from ..schemas.triggers import TriggerListResponse, trigger_to_response
from .._store_state import get_job_store


router = APIRouter()


def _job_to_response(job: JobDetail) -> JobResponse:
    return JobResponse(
        name=job.key.name,
        group=job.key.group,
        job_class=job.job_class,
        data_map=job.data_map,
    )


@router.get("/{group}/{name}", response_model=JobResponse)
async def get_job(group: str, name: str):
    """Get a job definition by key."""
    store = get_job_store()

    try:
        job = store.retrieve_job(JobKey(name, group))
    except JobPersistenceError as e:
        raise HTTPException(status_code=503, detail=f"Document store unavailable: {str(e)}")

    if job is None:
        raise HTTPException(status_code=404, detail=f"Job not found: {group}.{name}")

    return _job_to_response(job)


@router.delete("/{group}/{name}", response_model=JobDeleteResponse)
async def delete_job(group: str, name: str):
    """
    Remove a job definition.

    Triggers referencing the job are left in place; firing them moves
    them to ERROR.
    """
    store = get_job_store()

    try:
        removed = store.remove_job(JobKey(name, group))
    except JobPersistenceError as e:
        raise HTTPException(status_code=503, detail=f"Document store unavailable: {str(e)}")

    if not removed:
        raise HTTPException(status_code=404, detail=f"Job not found: {group}.{name}")

    return JobDeleteResponse(
        name=name,
        group=group,
        success=True,
        message="Job removed",
    )


@router.get("/{group}/{name}/triggers", response_model=TriggerListResponse)
async def get_job_triggers(group: str, name: str):
    """
    List triggers referencing a job.

    Results come from the search index and may lag recent writes.
    """
    store = get_job_store()

    try:
        triggers = store.get_triggers_for_job(JobKey(name, group))
    except JobPersistenceError as e:
        raise HTTPException(status_code=503, detail=f"Document store unavailable: {str(e)}")

    return TriggerListResponse(
        triggers=[trigger_to_response(trigger) for trigger in triggers],
        total=len(triggers),
    )
