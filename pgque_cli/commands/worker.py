"""Worker Commands - Run job workers"""

import asyncio
import signal
from typing import Optional

import typer

from pgque.config.logging import get_logger, setup_logging
from pgque.config.settings import settings
from pgque.jobs.registry_init import register_job_modules
from pgque.jobs.worker import WorkerPool

from ..utils.formatting import print_info, print_warning
from ..utils.runtime import open_context

logger = get_logger(__name__)
app = typer.Typer(name="worker", help="Run job workers")


def _log_job_error(error: BaseException) -> None:
    logger.error("Job error", exception=error.__class__.__name__, message=str(error))


async def run_pool(count: int, poll_interval_s: float) -> None:
    async with open_context(error_handler=_log_job_error) as context:
        pool = WorkerPool(
            context,
            worker_count=count,
            poll_interval_s=poll_interval_s,
            error_backoff_s=settings.job_error_backoff_s,
        )

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, pool.stop)
            except NotImplementedError:
                # Windows event loops do not support signal handlers
                pass

        await pool.start()


@app.command("start")
def start(
    count: Optional[int] = typer.Option(
        None, "--count", "-c", help="Number of worker loops (default: JOB_WORKER_COUNT)"
    ),
    modules: list[str] = typer.Option(
        [], "--module", "-m", help="Module that registers job types; repeatable"
    ),
    poll_interval: Optional[float] = typer.Option(
        None, "--poll-interval", help="Seconds to sleep when the queue is empty"
    ),
):
    """⚙ Start workers and process jobs until interrupted"""
    setup_logging()
    registered = register_job_modules(settings, modules)
    if not registered:
        print_warning("No job types registered; every claimed job will fail with UnknownJobType")

    worker_count = count or settings.job_worker_count
    interval = poll_interval if poll_interval is not None else settings.job_poll_interval_ms / 1000

    print_info(f"Starting {worker_count} worker(s). Press Ctrl+C to stop…")
    asyncio.run(run_pool(worker_count, interval))
    print_info("Workers stopped.")
