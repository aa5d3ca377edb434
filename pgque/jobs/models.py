"""
Job queue data model.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, TIMESTAMP, BigInteger, Identity, Integer, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from pgque.infra.database import Base

# Column default for priority when neither caller nor job type picks one
DEFAULT_PRIORITY = 1


class JobRecord(Base):
    """
    A persisted unit of work.

    The primary key is ``(priority, run_at, job_id)`` so the claim query can
    walk the index in claim order. Every operation on a claimed row matches
    on all three columns: a retry rewrites ``run_at`` while other references
    to the previous version of the row may still be in flight.
    """

    __tablename__ = "que_jobs"

    priority: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        server_default=text(str(DEFAULT_PRIORITY)),
        comment="Lower is claimed first",
    )
    run_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        primary_key=True,
        server_default=text("now()"),
        comment="Earliest time the job may be claimed",
    )
    id: Mapped[int] = mapped_column(
        "job_id",
        BigInteger,
        Identity(always=False),
        primary_key=True,
    )
    type: Mapped[str] = mapped_column(
        Text, nullable=False, comment="Job type identifier"
    )
    args: Mapped[list[Any]] = mapped_column(
        JSON,
        nullable=False,
        server_default=text("'[]'"),
        comment="Positional arguments passed to run()",
    )
    error_count: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("0")
    )
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    def is_failing(self) -> bool:
        return self.error_count > 0

    def to_candidate(self) -> "JobCandidate":
        return JobCandidate(
            id=self.id,
            priority=self.priority,
            run_at=self.run_at,
            type=self.type,
            args=self.args,
            error_count=self.error_count,
        )


@dataclass(frozen=True)
class JobCandidate:
    """Snapshot of a row returned by the claim query, taken while its lock is held."""

    id: int
    priority: int
    run_at: datetime
    type: str
    args: Any  # JSON text or already-decoded list, depending on the driver
    error_count: int = 0

    @property
    def key(self) -> tuple[int, datetime, int]:
        return (self.priority, self.run_at, self.id)
