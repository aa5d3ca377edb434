"""
Job management API endpoints.
"""

from typing import Any

from fastapi import APIRouter, Depends, Query

from pgque.config.logging import get_logger
from pgque.config.settings import Settings, SettingsDep
from pgque.core.exceptions import create_success_response
from pgque.infra.database import Database, get_database
from pgque.jobs.context import QueueContext
from pgque.jobs.schemas import JobEnqueueRequest
from pgque.jobs.service import JobService

logger = get_logger(__name__)
router = APIRouter(prefix="/jobs", tags=["jobs"])


def get_queue_context(
    settings: Settings = SettingsDep,
    database: Database = Depends(get_database),
) -> QueueContext:
    return QueueContext.from_settings(settings, database.job_store)


def get_job_service(context: QueueContext = Depends(get_queue_context)) -> JobService:
    return JobService(context)


JobServiceDep = Depends(get_job_service)


@router.post("", response_model=dict, status_code=201)
async def enqueue_job(
    job_request: JobEnqueueRequest,
    job_service: JobService = JobServiceDep,
) -> dict[str, Any]:
    """Enqueue a new job."""
    result = await job_service.enqueue_job(
        job_request.type,
        job_request.args,
        priority=job_request.priority,
        run_at=job_request.run_at,
    )
    return create_success_response(data=result.model_dump(mode="json"))


@router.get("", response_model=dict)
async def list_jobs(
    type: str | None = Query(default=None, description="Filter by job type"),
    failing: bool | None = Query(
        default=None, description="Only jobs that have (or have not) failed"
    ),
    limit: int = Query(default=50, ge=1, le=1000, description="Maximum results"),
    offset: int = Query(default=0, ge=0, description="Results offset"),
    job_service: JobService = JobServiceDep,
) -> dict[str, Any]:
    """List jobs in claim order."""
    result = await job_service.list_jobs(
        job_type=type, failing=failing, limit=limit, offset=offset
    )
    return create_success_response(data=result.model_dump(mode="json"))


@router.get("/stats", response_model=dict)
async def get_job_stats(job_service: JobService = JobServiceDep) -> dict[str, Any]:
    """Get queue statistics."""
    stats = await job_service.get_job_stats()
    return create_success_response(data=stats.model_dump())


@router.get("/{job_id}", response_model=dict)
async def get_job(job_id: int, job_service: JobService = JobServiceDep) -> dict[str, Any]:
    """Get a specific job by ID."""
    job = await job_service.get_job(job_id)
    return create_success_response(data=job.model_dump(mode="json"))


@router.post("/{job_id}/retry", response_model=dict)
async def retry_job(job_id: int, job_service: JobService = JobServiceDep) -> dict[str, Any]:
    """Make a job eligible to run immediately."""
    await job_service.retry_job(job_id)
    return create_success_response(data={"success": True, "job_id": job_id})


@router.delete("/{job_id}", response_model=dict)
async def remove_job(job_id: int, job_service: JobService = JobServiceDep) -> dict[str, Any]:
    """Permanently remove a job from the queue."""
    await job_service.remove_job(job_id)
    logger.info("Job removed via API", job_id=job_id)
    return create_success_response(data={"success": True, "job_id": job_id})
