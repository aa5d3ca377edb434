from datetime import timedelta

import pytest

from pgque.jobs.models import JobCandidate
from pgque.jobs.retry import RetryPolicy, backoff_seconds, format_error


@pytest.mark.parametrize(
    "error_count,expected",
    [(1, 4), (2, 19), (3, 84), (4, 259), (5, 628)],
)
def test_backoff_seconds(error_count, expected):
    assert backoff_seconds(error_count) == expected


def test_backoff_is_strictly_increasing():
    delays = [backoff_seconds(n) for n in range(1, 20)]
    assert delays == sorted(set(delays))


def test_next_attempt(context, clock):
    candidate = JobCandidate(
        id=1, priority=1, run_at=clock(), type="Job", args=[], error_count=2
    )

    error_count, run_at = RetryPolicy(context).next_attempt(candidate)

    assert error_count == 3
    assert run_at == clock() + timedelta(seconds=84)


def test_format_error_includes_message_and_stack():
    try:
        raise ValueError("bad input")
    except ValueError as e:
        text = format_error(e)

    first, _, stack = text.partition("\n")
    assert first == "bad input"
    assert "test_format_error_includes_message_and_stack" in stack
    assert not text.endswith("\n")


def test_format_error_without_traceback():
    assert format_error(RuntimeError("never raised")) == "never raised"


async def test_handle_uses_original_key(context, store, clock, reported_errors):
    async with store.checkout() as connection:
        await connection.insert({"type": "Job", "args": "[]"})
        candidate = await connection.claim_next()

        run_at = await RetryPolicy(context).handle(connection, candidate, KeyError("k"))

    (record,) = store.records.values()
    assert record.error_count == 1
    assert record.run_at == run_at == clock() + timedelta(seconds=4)
    assert record.last_error == "'k'"
    assert len(reported_errors) == 1


async def test_handle_misses_rescheduled_row(context, store, clock):
    async with store.checkout() as connection:
        await connection.insert({"type": "Job", "args": "[]"})
        candidate = await connection.claim_next()

        # an operator moved the job while it was running
        store.records[candidate.id].run_at = clock() + timedelta(days=1)
        await RetryPolicy(context).handle(connection, candidate, RuntimeError("x"))

    (record,) = store.records.values()
    assert record.error_count == 0
    assert record.last_error is None
