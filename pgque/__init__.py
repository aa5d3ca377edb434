"""
pgque: a Postgres-backed job queue.

Producers enqueue typed jobs with an optional run time and priority; workers
claim them under per-job advisory locks, delete them on success and
reschedule them with growing backoff on failure.
"""

from pgque.core.registries import job_registry
from pgque.jobs.context import QueueContext
from pgque.jobs.enqueue import Enqueuer
from pgque.jobs.job import Job
from pgque.jobs.worker import WorkerLoop, WorkerPool, WorkResult

__version__ = "0.1.0"

__all__ = [
    "Enqueuer",
    "Job",
    "QueueContext",
    "WorkResult",
    "WorkerLoop",
    "WorkerPool",
    "job_registry",
]
