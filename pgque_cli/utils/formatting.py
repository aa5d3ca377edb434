"""Rich Formatting Utilities for CLI Output"""

from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

console = Console()


def print_success(message: str):
    """Print success message with green styling"""
    console.print(f"[green]✓ {message}[/green]")


def print_error(message: str):
    """Print error message with red styling"""
    console.print(f"[red]✗ {message}[/red]")


def print_warning(message: str):
    """Print warning message with yellow styling"""
    console.print(f"[yellow]⚠ {message}[/yellow]")


def print_info(message: str):
    """Print info message with blue styling"""
    console.print(f"[blue]ℹ {message}[/blue]")


def create_jobs_table(jobs: list[dict[str, Any]]) -> Table:
    """Create a formatted table for the job list, in claim order"""
    table = Table(title="Jobs", box=box.ROUNDED)

    table.add_column("ID", justify="right", style="cyan", no_wrap=True)
    table.add_column("Type", justify="left", style="magenta")
    table.add_column("Priority", justify="center", style="yellow")
    table.add_column("Run At", justify="left", style="white")
    table.add_column("Errors", justify="center", style="red")
    table.add_column("Last Error", justify="left", style="dim")

    for job in jobs:
        last_error = (job.get("last_error") or "").splitlines()
        table.add_row(
            str(job["id"]),
            job["type"],
            str(job["priority"]),
            str(job["run_at"]),
            str(job["error_count"]) if job["error_count"] else "—",
            _truncate(last_error[0], 60) if last_error else "—",
        )

    return table


def create_stats_panel(stats: dict[str, Any]) -> Panel:
    """Create a panel summarizing queue statistics"""
    lines = [
        f"• Total jobs: [cyan]{stats['total_jobs']}[/cyan]",
        f"• Ready to run: [green]{stats['ready']}[/green]",
        f"• Failing: [red]{stats['failing']}[/red]",
        f"• Locked by workers: [yellow]{stats['locked']}[/yellow]",
    ]
    if stats["by_type"]:
        lines.append("")
        lines.append("[bold]By type[/bold]")
        for job_type, count in sorted(stats["by_type"].items()):
            lines.append(f"  {job_type}: {count}")

    return Panel("\n".join(lines), title="Queue Stats", border_style="cyan")


def _truncate(text: str, width: int) -> str:
    return text if len(text) <= width else text[: width - 1] + "…"
