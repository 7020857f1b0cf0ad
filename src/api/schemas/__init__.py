"""
API Schemas package.

Pydantic models for request/response validation.
"""

from .jobs import (
    JobResponse,
    JobDeleteResponse,
    StatsResponse,
)
from .triggers import (
    TriggerResponse,
    TriggerListResponse,
    TriggerReleaseResponse,
    release_message,
    trigger_to_response,
)

__all__ = [
    "JobResponse",
    "JobDeleteResponse",
    "StatsResponse",
    "TriggerResponse",
    "TriggerListResponse",
    "TriggerReleaseResponse",
    "release_message",
    "trigger_to_response",
]
