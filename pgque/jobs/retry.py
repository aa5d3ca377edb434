"""
Rescheduling failed jobs.

Retries are unbounded: a job that keeps failing keeps its row, with a
growing ``error_count`` and ``run_at``, until an operator fixes or removes
it.
"""

import traceback
from datetime import datetime, timedelta

from pgque.config.logging import get_logger
from pgque.jobs.context import QueueContext
from pgque.jobs.models import JobCandidate
from pgque.jobs.store import StoreConnection

logger = get_logger(__name__)


def backoff_seconds(error_count: int) -> int:
    """Delay before attempt number ``error_count + 1``; never below 4 seconds."""
    return error_count**4 + 3


def format_error(error: BaseException) -> str:
    stack = "".join(traceback.format_tb(error.__traceback__))
    return f"{error}\n{stack}".rstrip("\n")


class RetryPolicy:
    def __init__(self, context: QueueContext):
        self.context = context

    def next_attempt(self, candidate: JobCandidate) -> tuple[int, datetime]:
        error_count = candidate.error_count + 1
        run_at = self.context.clock() + timedelta(seconds=backoff_seconds(error_count))
        return error_count, run_at

    async def handle(
        self,
        connection: StoreConnection,
        candidate: JobCandidate,
        error: Exception,
    ) -> datetime:
        """Persist the failure against the row's original key, then report it."""
        error_count, run_at = self.next_attempt(candidate)

        await connection.record_failure(
            candidate.priority,
            candidate.run_at,
            candidate.id,
            error_count,
            run_at,
            format_error(error),
        )

        logger.warning(
            "Job failed, retry scheduled",
            job_id=candidate.id,
            type=candidate.type,
            error=str(error),
            error_count=error_count,
            next_run_at=run_at.isoformat(),
        )

        self.context.report_error(error)
        return run_at
