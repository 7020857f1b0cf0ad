"""
Job API schemas.
"""

from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class JobResponse(BaseModel):
    """Response representing a stored job definition."""

    name: str = Field(..., description="Job name")
    group: str = Field(..., description="Job group")
    job_class: str = Field(..., description="Dotted path of the job implementation")
    data_map: Dict[str, Any] = Field(default_factory=dict, description="Job data")


class JobDeleteResponse(BaseModel):
    """Response from job deletion."""

    name: str
    group: str
    success: bool
    message: Optional[str] = None


class StatsResponse(BaseModel):
    """Document counts in the job store."""

    job_count: int = Field(..., description="Number of stored jobs")
    trigger_count: int = Field(..., description="Number of stored triggers")
