"""
SQL used by the Postgres job store.
"""

from sqlalchemy import text

# Walks que_jobs in (priority, run_at, job_id) order with a recursive CTE,
# trying a session-level advisory lock on each eligible row until one
# succeeds. Rows locked by other sessions are skipped without blocking.
LOCK_JOB = text(
    """
    WITH RECURSIVE job AS (
      SELECT (j).*, pg_try_advisory_lock((j).job_id) AS locked
      FROM (
        SELECT j
        FROM que_jobs AS j
        WHERE run_at <= now()
        ORDER BY priority, run_at, job_id
        LIMIT 1
      ) AS t1
      UNION ALL (
        SELECT (j).*, pg_try_advisory_lock((j).job_id) AS locked
        FROM (
          SELECT (
            SELECT j
            FROM que_jobs AS j
            WHERE run_at <= now()
              AND (priority, run_at, job_id) > (job.priority, job.run_at, job.job_id)
            ORDER BY priority, run_at, job_id
            LIMIT 1
          ) AS j
          FROM job
          WHERE NOT job.locked
          LIMIT 1
        ) AS t1
      )
    )
    SELECT job_id, priority, run_at, args, type, error_count
    FROM job
    WHERE locked
    LIMIT 1
    """
)

CHECK_JOB = text(
    """
    SELECT 1 AS one
    FROM que_jobs
    WHERE priority = :priority AND run_at = :run_at AND job_id = :job_id
    """
)

SET_ERROR = text(
    """
    UPDATE que_jobs
    SET error_count = :error_count,
        run_at = :new_run_at,
        last_error = :last_error
    WHERE priority = :priority AND run_at = :run_at AND job_id = :job_id
    """
)

DESTROY_JOB = text(
    """
    DELETE FROM que_jobs
    WHERE priority = :priority AND run_at = :run_at AND job_id = :job_id
    """
)

ADVISORY_UNLOCK = text("SELECT pg_advisory_unlock(:job_id)")

# Advisory locks on bigint keys split the key across classid (high) and objid (low)
COUNT_LOCKED_JOBS = text(
    """
    SELECT count(*)
    FROM que_jobs AS j
    JOIN pg_locks AS l
      ON l.locktype = 'advisory'
     AND l.granted
     AND l.objsubid = 1
     AND ((l.classid::bigint << 32) | l.objid::bigint) = j.job_id
    """
)


def insert_job(columns: list[str]):
    """
    Build the INSERT for the given columns, returning the stored row.

    Column names come from the store's whitelist, never from callers.
    """
    placeholders = [
        "CAST(:args AS json)" if column == "args" else f":{column}"
        for column in columns
    ]
    return text(
        f"INSERT INTO que_jobs ({', '.join(columns)}) "
        f"VALUES ({', '.join(placeholders)}) "
        "RETURNING job_id, priority, run_at, type, args, error_count"
    )
