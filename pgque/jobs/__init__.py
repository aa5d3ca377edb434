"""
Job queue internals.

This package provides:
- The que_jobs data model and the store contract with Postgres and in-memory backends
- Enqueueing with per-type default priority and run time
- Claiming under session-scoped advisory locks with a post-lock existence check
- Execution, deletion on success and unbounded exponential backoff on failure
"""
