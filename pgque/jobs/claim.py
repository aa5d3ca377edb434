"""
Claiming a job under a session-scoped lock.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum

from pgque.config.logging import get_logger
from pgque.jobs.models import JobCandidate
from pgque.jobs.store import StoreConnection

logger = get_logger(__name__)


class ClaimState(str, Enum):
    EMPTY = "empty"  # nothing eligible and unlocked
    RACED = "raced"  # locked a row that another worker had already finished
    HELD = "held"  # locked and still present; safe to execute
    ERROR = "error"  # the claim or validation query itself failed


@dataclass
class Claim:
    state: ClaimState
    candidate: JobCandidate | None = None
    error: Exception | None = None


class ClaimManager:
    """
    Locks one job on a connection and guarantees the lock is released.

    The claim query may read a snapshot in which a job still exists, then
    obtain that job's lock only after the worker holding it deleted the row
    and unlocked. Once we hold the lock any previous worker is done with the
    row, so checking that it still exists is enough to rule out running it
    twice.
    """

    def __init__(self, connection: StoreConnection):
        self.connection = connection

    @asynccontextmanager
    async def claim(self) -> AsyncIterator[Claim]:
        try:
            candidate = await self.connection.claim_next()
        except Exception as e:
            yield Claim(ClaimState.ERROR, error=e)
            return

        if candidate is None:
            yield Claim(ClaimState.EMPTY)
            return

        try:
            try:
                exists = await self.connection.still_exists(*candidate.key)
            except Exception as e:
                yield Claim(ClaimState.ERROR, candidate, error=e)
                return

            if not exists:
                logger.debug("Claimed job already finished", job_id=candidate.id)
                yield Claim(ClaimState.RACED, candidate)
            else:
                yield Claim(ClaimState.HELD, candidate)
        finally:
            await self.connection.release_lock(candidate.id)
