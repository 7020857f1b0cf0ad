"""
Triggers router for trigger inspection and operator release.

- GET /triggers/{group}/{name} - Get a trigger with its state and version
- POST /triggers/{group}/{name}/release - Return an ACQUIRED trigger to WAITING
"""

from fastapi import APIRouter, HTTPException

from src.jobstore import JobPersistenceError, TransitionOutcome, TriggerKey

from ..schemas.triggers import (
    TriggerReleaseResponse,
    TriggerResponse,
    release_message,
    trigger_to_response,
)
from .._store_state import get_job_store


router = APIRouter()


@router.get("/{group}/{name}", response_model=TriggerResponse)
async def get_trigger(group: str, name: str):
    """Get a trigger by key, read directly from the document (not the index)."""
    store = get_job_store()

    try:
        trigger = store.retrieve_trigger(TriggerKey(name, group))
    except JobPersistenceError as e:
        raise HTTPException(status_code=503, detail=f"Document store unavailable: {str(e)}")

    if trigger is None:
        raise HTTPException(status_code=404, detail=f"Trigger not found: {group}.{name}")

    return trigger_to_response(trigger)


@router.post("/{group}/{name}/release", response_model=TriggerReleaseResponse)
async def release_trigger(group: str, name: str):
    """
    Release a trigger stuck in ACQUIRED, e.g. after its node crashed.

    Version-checked like any other transition; a trigger in any other
    state is reported as not released.
    """
    store = get_job_store()

    try:
        result = store.release_trigger(TriggerKey(name, group))
    except JobPersistenceError as e:
        raise HTTPException(status_code=503, detail=f"Document store unavailable: {str(e)}")

    if result.outcome == TransitionOutcome.NOT_FOUND:
        raise HTTPException(status_code=404, detail=f"Trigger not found: {group}.{name}")

    return TriggerReleaseResponse(
        name=name,
        group=group,
        released=result.applied,
        message=release_message(result),
    )
