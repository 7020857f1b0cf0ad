"""
Trigger API schemas.

Times are ISO 8601 strings in UTC; unset times are null.
"""

from datetime import datetime
from typing import List, Optional, Literal
from pydantic import BaseModel, Field

from src.jobstore import (
    CronSchedule,
    SimpleSchedule,
    TransitionOutcome,
    TransitionResult,
    Trigger,
    TriggerState,
)


class TriggerResponse(BaseModel):
    """Response representing a stored trigger."""

    name: str = Field(..., description="Trigger name")
    group: str = Field(..., description="Trigger group")
    job_name: str = Field(..., description="Name of the job this trigger fires")
    job_group: str = Field(..., description="Group of the job this trigger fires")
    variant: Literal["SIMPLE", "CRON"] = Field(..., description="Trigger variant")
    state: str = Field(..., description="WAITING/ACQUIRED/EXECUTING/COMPLETED/ERROR")
    priority: int = Field(..., description="Trigger priority")
    start_time: Optional[str] = Field(default=None, description="Schedule start")
    end_time: Optional[str] = Field(default=None, description="Schedule end")
    next_fire_time: Optional[str] = Field(default=None, description="Next scheduled fire")
    previous_fire_time: Optional[str] = Field(default=None, description="Last fire")
    version: Optional[int] = Field(default=None, description="Store version of the document")
    repeat_count: Optional[int] = Field(default=None, description="SIMPLE only; -1 repeats forever")
    repeat_interval: Optional[int] = Field(default=None, description="SIMPLE only; milliseconds")
    times_triggered: Optional[int] = Field(default=None, description="SIMPLE only")
    cron_expression: Optional[str] = Field(default=None, description="CRON only")


class TriggerListResponse(BaseModel):
    """Triggers referencing one job."""

    triggers: List[TriggerResponse] = Field(default_factory=list)
    total: int = Field(..., description="Number of triggers returned")


class TriggerReleaseResponse(BaseModel):
    """Response from releasing an acquired trigger."""

    name: str
    group: str
    released: bool
    message: Optional[str] = None


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def trigger_to_response(trigger: Trigger) -> TriggerResponse:
    """Convert a Trigger entity to its API representation (also used by the CLI)."""
    response = TriggerResponse(
        name=trigger.key.name,
        group=trigger.key.group,
        job_name=trigger.job_key.name,
        job_group=trigger.job_key.group,
        variant=trigger.variant.value,
        state=trigger.state.value,
        priority=trigger.priority,
        start_time=_iso(trigger.start_time),
        end_time=_iso(trigger.end_time),
        next_fire_time=_iso(trigger.next_fire_time),
        previous_fire_time=_iso(trigger.previous_fire_time),
        version=trigger.version,
    )

    schedule = trigger.schedule
    if isinstance(schedule, SimpleSchedule):
        response.repeat_count = schedule.repeat_count
        response.repeat_interval = schedule.repeat_interval
        response.times_triggered = schedule.times_triggered
    elif isinstance(schedule, CronSchedule):
        response.cron_expression = schedule.cron_expression

    return response


def release_message(result: TransitionResult) -> str:
    """Describe a release attempt from its own outcome, not an earlier read."""
    if result.applied:
        return f"Trigger returned to {TriggerState.WAITING.value}"
    if result.outcome == TransitionOutcome.STALE_STATE:
        return f"Trigger was {result.trigger.state.value}, not {TriggerState.ACQUIRED.value}"
    if result.outcome == TransitionOutcome.VERSION_CONFLICT:
        return "Trigger was modified concurrently, not released"
    return "Trigger not found"
