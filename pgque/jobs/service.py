"""
Operator-facing job management: enqueue, inspect and intervene on jobs.
"""

from datetime import datetime
from typing import Any

from pgque.config.logging import get_logger
from pgque.core.exceptions import NotFoundError
from pgque.jobs.context import QueueContext
from pgque.jobs.enqueue import Enqueuer
from pgque.jobs.schemas import (
    JobEnqueueResponse,
    JobListResponse,
    JobResponse,
    JobStatsResponse,
)

logger = get_logger(__name__)


class JobService:
    """Service for managing jobs on behalf of the API and CLI."""

    def __init__(self, context: QueueContext):
        self.context = context
        self.store = context.store

    async def enqueue_job(
        self,
        job_type: str,
        args: list[Any],
        priority: int | None = None,
        run_at: datetime | None = None,
    ) -> JobEnqueueResponse:
        job = await Enqueuer(self.context).enqueue(
            job_type, *args, priority=priority, run_at=run_at
        )
        return JobEnqueueResponse(
            id=job.id, type=job.type, priority=job.priority, run_at=job.run_at
        )

    async def list_jobs(
        self,
        job_type: str | None = None,
        failing: bool | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> JobListResponse:
        jobs, total = await self.store.list_jobs(
            job_type=job_type, failing=failing, limit=limit, offset=offset
        )
        return JobListResponse(
            jobs=[JobResponse.model_validate(job) for job in jobs],
            total=total,
            limit=limit,
            offset=offset,
        )

    async def get_job(self, job_id: int) -> JobResponse:
        job = await self.store.get_job(job_id)
        if job is None:
            raise NotFoundError(f"Job {job_id} not found", details={"job_id": job_id})
        return JobResponse.model_validate(job)

    async def get_job_stats(self) -> JobStatsResponse:
        return JobStatsResponse(**await self.store.job_stats())

    async def retry_job(self, job_id: int) -> None:
        """Make a job eligible now. Its error_count is kept."""
        if not await self.store.retry_job(job_id):
            raise NotFoundError(f"Job {job_id} not found", details={"job_id": job_id})
        logger.info("Job retried", job_id=job_id)

    async def remove_job(self, job_id: int) -> None:
        """Permanently abandon a job."""
        if not await self.store.remove_job(job_id):
            raise NotFoundError(f"Job {job_id} not found", details={"job_id": job_id})
        logger.info("Job removed", job_id=job_id)
