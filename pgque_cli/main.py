"""pgque CLI - Main Entry Point"""

import asyncio
import json
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel

from pgque.core.exceptions import PgqueException
from pgque.jobs.enqueue import Enqueuer

from .commands import jobs, worker
from .utils.formatting import print_error, print_success
from .utils.runtime import open_context
from .utils.timeparse import parse_delay_to_seconds, parse_run_at, run_at_after

console = Console()

app = typer.Typer(
    name="pgque",
    help="pgque - Postgres job queue CLI",
    rich_markup_mode="rich",
)

app.add_typer(jobs.app, name="jobs")
app.add_typer(worker.app, name="worker")


@app.command()
def enqueue(
    job_type: str = typer.Argument(..., help="Job type identifier"),
    args_json: str = typer.Argument("[]", help="JSON array of positional arguments"),
    priority: Optional[int] = typer.Option(None, "--priority", "-p", help="Lower runs first"),
    run_at: Optional[str] = typer.Option(None, "--run-at", help="ISO timestamp; naive values are UTC"),
    delay: Optional[str] = typer.Option(
        None, "--delay", help="Run after a delay, e.g. 20s, 5m, 1h30m (exclusive with --run-at)"
    ),
):
    """➕ Add a job to the queue"""
    if run_at and delay:
        print_error("Use either --run-at or --delay, not both.")
        raise typer.Exit(1)

    try:
        args = json.loads(args_json)
        if not isinstance(args, list):
            raise ValueError("arguments must be a JSON array")
        scheduled = None
        if delay:
            scheduled = run_at_after(parse_delay_to_seconds(delay))
        elif run_at:
            scheduled = parse_run_at(run_at)
    except ValueError as e:
        print_error(f"Invalid input: {e}")
        raise typer.Exit(1) from None

    async def _enqueue():
        async with open_context() as context:
            return await Enqueuer(context).enqueue(
                job_type, *args, priority=priority, run_at=scheduled
            )

    try:
        job = asyncio.run(_enqueue())
    except PgqueException as e:
        print_error(f"Failed to enqueue: {e.message}")
        raise typer.Exit(1) from None

    print_success(
        f"Enqueued {job.type} #{job.id} (priority={job.priority}, run_at={job.run_at.isoformat()})"
    )


@app.command()
def version():
    """📎 Show version information"""
    from . import __version__

    console.print(Panel(
        f"[bold cyan]pgque[/bold cyan]\n\n"
        f"• Version: [green]{__version__}[/green]",
        title="Version Info",
        border_style="cyan"
    ))


if __name__ == "__main__":
    app()
