"""
Worker side of the queue.

``WorkerLoop.work()`` performs one attempt: check out a connection, claim a
job, execute it, reschedule it on failure and release the lock.
``WorkerPool`` runs several such loops concurrently and sleeps between
polls when the queue is empty. Workers never coordinate with each other;
all mutual exclusion comes from the store's per-job locks.
"""

import asyncio
import os
import socket
from enum import Enum

from pgque.config.logging import bind_job_context, clear_job_context, get_logger
from pgque.config.settings import Settings
from pgque.jobs.claim import ClaimManager, ClaimState
from pgque.jobs.context import QueueContext
from pgque.jobs.executor import Executor, JobFailed
from pgque.jobs.retry import RetryPolicy

logger = get_logger(__name__)


class WorkResult(Enum):
    """Outcome of one ``work()`` call. Only NO_WORK is falsy."""

    NO_WORK = "no_work"
    WORKED = "worked"
    FAILED = "failed"
    RACED = "raced"
    ERRORED = "errored"

    def __bool__(self) -> bool:
        return self is not WorkResult.NO_WORK


class WorkerLoop:
    def __init__(self, context: QueueContext):
        self.context = context
        self.executor = Executor(context)
        self.retry_policy = RetryPolicy(context)

    async def work(self) -> WorkResult:
        """
        Attempt one job.

        Returns a truthy result whenever a claim was attempted, so callers
        poll again immediately, and ``WorkResult.NO_WORK`` only when nothing
        was eligible. Job failures are persisted and reported, never raised.
        An error while persisting a failure propagates after the lock has
        been released.
        """
        # Lock, validate, execute and unlock must share one connection: the
        # lock belongs to the connection's session.
        async with self.context.store.checkout() as connection:
            async with ClaimManager(connection).claim() as claim:
                if claim.state is ClaimState.EMPTY:
                    return WorkResult.NO_WORK

                if claim.state is ClaimState.RACED:
                    return WorkResult.RACED

                if claim.state is ClaimState.ERROR:
                    logger.error("Could not claim a job", error=str(claim.error))
                    self.context.report_error(claim.error)
                    return WorkResult.ERRORED

                candidate = claim.candidate
                bind_job_context(job_id=candidate.id, job_type=candidate.type)
                try:
                    result = await self.executor.execute(candidate, connection)
                    if isinstance(result, JobFailed):
                        await self.retry_policy.handle(connection, candidate, result.error)
                        return WorkResult.FAILED
                    return WorkResult.WORKED
                finally:
                    clear_job_context("job_id", "job_type")


class WorkerPool:
    """
    Runs ``worker_count`` polling loops until stopped.

    A loop sleeps ``poll_interval_s`` after a NO_WORK result and
    ``error_backoff_s`` after ``work()`` raised; otherwise it polls again
    immediately.
    """

    def __init__(
        self,
        context: QueueContext,
        worker_count: int = 1,
        poll_interval_s: float = 5.0,
        error_backoff_s: float = 5.0,
    ):
        if worker_count < 1:
            raise ValueError("worker_count must be at least 1")
        self.context = context
        self.worker_count = worker_count
        self.poll_interval_s = poll_interval_s
        self.error_backoff_s = error_backoff_s
        self.worker_id = f"{socket.gethostname()}-{os.getpid()}-{id(self)}"
        self.running = False
        self._stopping: asyncio.Event | None = None

    @classmethod
    def from_settings(cls, settings: Settings, context: QueueContext) -> "WorkerPool":
        return cls(
            context,
            worker_count=settings.job_worker_count,
            poll_interval_s=settings.job_poll_interval_ms / 1000,
            error_backoff_s=settings.job_error_backoff_s,
        )

    async def start(self) -> None:
        """Run the worker loops; returns once ``stop()`` was called and all loops finished."""
        if self.running:
            raise RuntimeError("Worker pool is already running")

        self.running = True
        self._stopping = asyncio.Event()
        logger.info(
            "Starting worker pool",
            worker_id=self.worker_id,
            worker_count=self.worker_count,
            poll_interval_s=self.poll_interval_s,
        )

        try:
            await asyncio.gather(
                *(
                    self._run_loop(f"{self.worker_id}/{n}")
                    for n in range(1, self.worker_count + 1)
                )
            )
        finally:
            self.running = False
            logger.info("Worker pool stopped", worker_id=self.worker_id)

    def stop(self) -> None:
        """Ask every loop to exit after its current attempt."""
        logger.info("Stopping worker pool", worker_id=self.worker_id)
        if self._stopping is not None:
            self._stopping.set()

    async def _run_loop(self, name: str) -> None:
        loop = WorkerLoop(self.context)
        while not self._stopping.is_set():
            try:
                result = await loop.work()
            except Exception:
                logger.exception("Error in worker loop", worker=name)
                await self._sleep(self.error_backoff_s)
                continue

            if not result:
                await self._sleep(self.poll_interval_s)

    async def _sleep(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._stopping.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass
