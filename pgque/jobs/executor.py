"""
Running a claimed job.
"""

import inspect
import time
from dataclasses import dataclass

from pgque.config.logging import get_logger
from pgque.jobs.context import QueueContext
from pgque.jobs.job import Job
from pgque.jobs.models import JobCandidate
from pgque.jobs.serialization import load_args
from pgque.jobs.store import StoreConnection

logger = get_logger(__name__)


@dataclass(frozen=True)
class JobSucceeded:
    job: Job
    elapsed_ms: float


@dataclass(frozen=True)
class JobFailed:
    error: Exception


ExecutionResult = JobSucceeded | JobFailed


class Executor:
    """Dispatches a candidate to its job class and deletes the row on success."""

    def __init__(self, context: QueueContext):
        self.context = context

    async def execute(
        self, candidate: JobCandidate, connection: StoreConnection
    ) -> ExecutionResult:
        """
        Run one job to completion.

        Unknown types, bad arguments, exceptions raised by ``run`` and a
        failing delete are all returned as ``JobFailed``; nothing raised by
        the job escapes this method.
        """
        try:
            job_cls = self.context.registry.get(candidate.type)
            args = load_args(candidate.args)
            job = job_cls(candidate, connection)

            start = time.perf_counter()
            outcome = job.run(*args)
            if inspect.isawaitable(outcome):
                await outcome
            if not job.destroyed:
                await job.destroy()
            elapsed_ms = (time.perf_counter() - start) * 1000
        except Exception as e:
            return JobFailed(e)

        logger.info("Worked job", elapsed_ms=round(elapsed_ms, 1), job=repr(job))
        return JobSucceeded(job, elapsed_ms)
