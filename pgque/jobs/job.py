"""
Base class for job types.

Subclass ``Job``, implement ``run`` and register the class with the job
registry. ``run`` receives the positional arguments given at enqueue time,
with nested objects decoded as ``JobArgs``.
"""

from collections.abc import Callable
from datetime import datetime
from typing import Any, ClassVar

from pgque.jobs.models import JobCandidate
from pgque.jobs.store import StoreConnection


class Job:
    # Identifier stored in the ``type`` column; defaults to the class name
    job_type: ClassVar[str | None] = None
    default_priority: ClassVar[int | None] = None
    default_run_at: ClassVar[Callable[[], datetime] | None] = None

    def __init__(self, candidate: JobCandidate, connection: StoreConnection):
        self.candidate = candidate
        self.connection = connection
        self.destroyed = False

    @classmethod
    def type_name(cls) -> str:
        return cls.job_type or cls.__name__

    @property
    def id(self) -> int:
        return self.candidate.id

    @property
    def error_count(self) -> int:
        return self.candidate.error_count

    async def run(self, *args: Any) -> None:
        """Do nothing. Types that only need scheduling can leave this as is."""

    async def destroy(self) -> None:
        """
        Delete this job's row now.

        Jobs that finish their own lifecycle call this from ``run``; the
        executor then skips its own delete.
        """
        self.destroyed = True
        await self.connection.delete(*self.candidate.key)

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__} id={self.candidate.id} "
            f"priority={self.candidate.priority} run_at={self.candidate.run_at.isoformat()}>"
        )
