"""Tests for ClaimManager and Executor."""

import pytest

from pgque.core.exceptions import UnknownJobType
from pgque.jobs.claim import ClaimManager, ClaimState
from pgque.jobs.enqueue import Enqueuer
from pgque.jobs.executor import Executor, JobFailed, JobSucceeded
from pgque.jobs.job import Job


@pytest.fixture
async def queued(context, registry):
    @registry.register_job
    class NoopJob(Job):
        pass

    await Enqueuer(context).enqueue(NoopJob, "arg")
    return NoopJob


class TestClaimManager:
    async def test_empty(self, store):
        async with store.checkout() as connection:
            async with ClaimManager(connection).claim() as claim:
                assert claim.state is ClaimState.EMPTY
                assert claim.candidate is None

    async def test_held_lock_is_released_on_exit(self, store, queued):
        async with store.checkout() as connection:
            async with ClaimManager(connection).claim() as claim:
                assert claim.state is ClaimState.HELD
                assert claim.candidate.type == "NoopJob"
                assert claim.candidate.id in store.locks

            assert store.locks == {}

    async def test_lock_is_released_when_body_raises(self, store, queued):
        async with store.checkout() as connection:
            with pytest.raises(RuntimeError):
                async with ClaimManager(connection).claim():
                    raise RuntimeError("worker crashed")

            assert store.locks == {}

    async def test_held_job_is_invisible_to_other_connections(self, store, queued):
        async with store.checkout() as first, store.checkout() as second:
            async with ClaimManager(first).claim() as claim:
                assert claim.state is ClaimState.HELD
                assert await second.claim_next() is None

    async def test_locks_disappear_with_the_connection(self, store, queued):
        async with store.checkout() as connection:
            candidate = await connection.claim_next()
            assert candidate.id in store.locks

        assert store.locks == {}

    async def test_raced(self, store, queued):
        async with store.checkout() as connection:
            candidate = await connection.claim_next()
            await connection.delete(*candidate.key)

            connection.store.locks[candidate.id] = connection

            async def replay():
                return candidate

            connection.claim_next = replay

            async with ClaimManager(connection).claim() as claim:
                assert claim.state is ClaimState.RACED
                assert claim.candidate == candidate

            assert store.locks == {}


class TestExecutor:
    async def test_succeeded(self, context, store, queued):
        async with store.checkout() as connection:
            candidate = await connection.claim_next()
            result = await Executor(context).execute(candidate, connection)

        assert isinstance(result, JobSucceeded)
        assert result.job.id == candidate.id
        assert result.elapsed_ms >= 0
        assert store.records == {}

    async def test_unknown_type_fails(self, context, store):
        await Enqueuer(context).enqueue("Ghost")

        async with store.checkout() as connection:
            candidate = await connection.claim_next()
            result = await Executor(context).execute(candidate, connection)

        assert isinstance(result, JobFailed)
        assert isinstance(result.error, UnknownJobType)
        assert result.error.job_type == "Ghost"
        assert len(store.records) == 1

    async def test_failed_delete_is_a_failure(self, context, store, queued):
        async def broken_delete(*key):
            raise ConnectionError("lost")

        async with store.checkout() as connection:
            candidate = await connection.claim_next()
            connection.delete = broken_delete
            result = await Executor(context).execute(candidate, connection)

        assert isinstance(result, JobFailed)
        assert isinstance(result.error, ConnectionError)

    async def test_job_sees_its_error_count(self, context, store, registry):
        seen = []

        @registry.register_job
        class CountingJob(Job):
            async def run(self):
                seen.append(self.error_count)

        await Enqueuer(context).enqueue(CountingJob)
        (record,) = store.records.values()
        record.error_count = 3

        async with store.checkout() as connection:
            candidate = await connection.claim_next()
            await Executor(context).execute(candidate, connection)

        assert seen == [3]

    def test_job_repr(self, clock):
        from pgque.jobs.models import JobCandidate

        candidate = JobCandidate(id=5, priority=2, run_at=clock(), type="Job", args=[])
        job = Job(candidate, connection=None)

        assert repr(job) == f"<Job id=5 priority=2 run_at={clock().isoformat()}>"
        assert job.id == 5
        assert Job.type_name() == "Job"
