"""Job Commands - Inspect and intervene on queued jobs"""

import asyncio
from typing import Optional

import typer
from rich.console import Console

from pgque.core.exceptions import PgqueException
from pgque.jobs.service import JobService

from ..utils.formatting import (
    create_jobs_table,
    create_stats_panel,
    print_error,
    print_info,
    print_success,
)
from ..utils.runtime import open_context

console = Console()
app = typer.Typer(name="jobs", help="Inspect and manage queued jobs")


@app.command("list")
def list_jobs(
    job_type: Optional[str] = typer.Option(None, "--type", "-t", help="Filter by job type"),
    failing: bool = typer.Option(False, "--failing", help="Only jobs that have failed at least once"),
    limit: int = typer.Option(50, "--limit", "-l", help="Maximum jobs to show"),
):
    """📋 List jobs in claim order"""

    async def _list():
        async with open_context() as context:
            return await JobService(context).list_jobs(
                job_type=job_type, failing=True if failing else None, limit=limit
            )

    try:
        result = asyncio.run(_list())
    except PgqueException as e:
        print_error(f"Failed to list jobs: {e.message}")
        raise typer.Exit(1) from None

    if not result.jobs:
        print_info("No jobs.")
        return

    console.print(create_jobs_table([job.model_dump() for job in result.jobs]))
    if result.total > len(result.jobs):
        print_info(f"Showing {len(result.jobs)} of {result.total} jobs")


@app.command("stats")
def show_stats():
    """📊 Show queue statistics"""

    async def _stats():
        async with open_context() as context:
            return await JobService(context).get_job_stats()

    try:
        stats = asyncio.run(_stats())
    except PgqueException as e:
        print_error(f"Failed to get stats: {e.message}")
        raise typer.Exit(1) from None

    console.print(create_stats_panel(stats.model_dump()))


@app.command("retry")
def retry_job(job_id: int = typer.Argument(..., help="Job ID")):
    """🔁 Make a job eligible to run now"""

    async def _retry():
        async with open_context() as context:
            await JobService(context).retry_job(job_id)

    try:
        asyncio.run(_retry())
    except PgqueException as e:
        print_error(e.message)
        raise typer.Exit(1) from None

    print_success(f"Job {job_id} will run at the next poll")


@app.command("delete")
def delete_job(
    job_id: int = typer.Argument(..., help="Job ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """🗑 Permanently remove a job"""
    if not yes and not typer.confirm(f"Remove job {job_id} permanently?"):
        raise typer.Abort()

    async def _delete():
        async with open_context() as context:
            await JobService(context).remove_job(job_id)

    try:
        asyncio.run(_delete())
    except PgqueException as e:
        print_error(e.message)
        raise typer.Exit(1) from None

    print_success(f"Removed job {job_id}")
