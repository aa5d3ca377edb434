"""
Pydantic schemas for the jobs API.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class JobEnqueueRequest(BaseModel):
    """Schema for enqueueing jobs via API."""

    type: str = Field(..., min_length=1, description="Job type identifier")
    args: list[Any] = Field(default_factory=list, description="Positional job arguments")
    priority: int | None = Field(
        default=None, description="Lower is claimed first; omitted means the type default"
    )
    run_at: datetime | None = Field(default=None, description="Earliest time to run job")


class JobEnqueueResponse(BaseModel):
    """The job as stored, with defaults resolved."""

    id: int
    type: str
    priority: int
    run_at: datetime


class JobResponse(BaseModel):
    """Schema for job API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    type: str
    args: list[Any]
    priority: int
    run_at: datetime
    error_count: int
    last_error: str | None = None


class JobListResponse(BaseModel):
    jobs: list[JobResponse]
    total: int
    limit: int
    offset: int


class JobStatsResponse(BaseModel):
    total_jobs: int
    by_type: dict[str, int]
    failing: int = Field(description="Jobs with at least one failed attempt")
    ready: int = Field(description="Jobs whose run_at has passed")
    locked: int = Field(description="Jobs currently held by a worker")
