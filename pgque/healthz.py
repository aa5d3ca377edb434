from datetime import UTC, datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from pgque.config.settings import Settings, SettingsDep
from pgque.core.exceptions import create_success_response
from pgque.infra.database import get_session
from pgque.jobs.routes import get_job_service
from pgque.jobs.service import JobService

router = APIRouter()


class DatabaseHealth(BaseModel):
    """Database health status."""

    connected: bool
    response_time_ms: float | None = None
    error: str | None = None


class QueueHealth(BaseModel):
    queue_depth: int = 0
    ready: int = 0
    failing: int = 0


@router.get("/healthz", response_model=dict)
async def health_check(
    settings: Settings = SettingsDep,
    session: AsyncSession = Depends(get_session),
    job_service: JobService = Depends(get_job_service),
):
    """Health check with database connectivity and queue depth."""

    timestamp = datetime.now(UTC).isoformat()

    db_health = await _check_database_health(session)

    queue_health = None
    if db_health.connected:
        try:
            stats = await job_service.get_job_stats()
            queue_health = QueueHealth(
                queue_depth=stats.total_jobs, ready=stats.ready, failing=stats.failing
            )
        except Exception:
            # Queue stats are informational; connectivity decides health
            queue_health = None

    health_data = {
        "ok": db_health.connected,
        "version": settings.version,
        "environment": settings.environment,
        "timestamp": timestamp,
        "database": db_health.model_dump(),
        "queue": queue_health.model_dump() if queue_health else None,
    }

    return create_success_response(data=health_data)


async def _check_database_health(session: AsyncSession) -> DatabaseHealth:
    """Check database connectivity and response time."""
    start_time = datetime.now(UTC)

    try:
        await session.execute(text("SELECT 1"))

        end_time = datetime.now(UTC)
        response_time_ms = (end_time - start_time).total_seconds() * 1000

        return DatabaseHealth(
            connected=True, response_time_ms=round(response_time_ms, 2)
        )

    except Exception as e:
        return DatabaseHealth(connected=False, error=str(e))
