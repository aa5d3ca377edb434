"""
Producer side: turning a call into a que_jobs row.
"""

from datetime import datetime
from typing import Any

from pgque.config.logging import get_logger
from pgque.jobs.context import QueueContext
from pgque.jobs.job import Job
from pgque.jobs.models import JobCandidate
from pgque.jobs.serialization import coerce_run_at, dump_args

logger = get_logger(__name__)


class Enqueuer:
    """Inserts jobs through the context's store."""

    def __init__(self, context: QueueContext):
        self.context = context

    async def enqueue(
        self,
        job_type: type[Job] | str,
        *args: Any,
        run_at: datetime | str | None = None,
        priority: int | None = None,
    ) -> JobCandidate:
        """
        Insert one job and return the stored row.

        A trailing dict in ``args`` may carry ``run_at`` and ``priority``;
        those keys are consumed and any other keys are kept as the job's last
        argument. Explicit keyword options take precedence over the dict.

        ``run_at`` may be a datetime or an ISO 8601 string; naive values are
        taken as UTC.

        Raises:
            EnqueueError: arguments are not serializable, run_at is not a
                time, or the store rejected the row.
        """
        args_list = list(args)
        if args_list and isinstance(args_list[-1], dict):
            options = dict(args_list.pop())
            option_run_at = options.pop("run_at", None)
            option_priority = options.pop("priority", None)
            if options:
                args_list.append(options)
            run_at = run_at if run_at is not None else option_run_at
            priority = priority if priority is not None else option_priority

        if isinstance(job_type, str):
            type_name = job_type
            job_cls = self.context.registry.find(job_type)
        else:
            type_name = job_type.type_name()
            job_cls = job_type

        if run_at is None and job_cls is not None and job_cls.default_run_at is not None:
            run_at = job_cls.default_run_at()

        if priority is None and job_cls is not None:
            priority = job_cls.default_priority
        if priority is None:
            priority = self.context.default_priority

        run_at = coerce_run_at(run_at)

        columns = {
            "type": type_name,
            "args": dump_args(args_list),
            "run_at": run_at,
            "priority": priority,
        }

        async with self.context.store.checkout() as connection:
            job = await connection.insert(columns)

        logger.info(
            "Job enqueued",
            job_id=job.id,
            type=job.type,
            priority=job.priority,
            run_at=job.run_at.isoformat(),
        )
        return job
