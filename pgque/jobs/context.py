"""
Explicit dependencies shared by the enqueue and worker paths.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from pgque.config.logging import get_logger
from pgque.config.settings import Settings
from pgque.core.registries import JobRegistry, job_registry
from pgque.jobs.store import JobStore

logger = get_logger(__name__)

# Receives every execution-time failure; its outcome is ignored
ErrorHandler = Callable[[BaseException], None]


def utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class QueueContext:
    store: JobStore
    registry: JobRegistry = field(default_factory=lambda: job_registry)
    error_handler: ErrorHandler | None = None
    default_priority: int | None = None
    clock: Callable[[], datetime] = utcnow

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: JobStore,
        error_handler: ErrorHandler | None = None,
    ) -> "QueueContext":
        return cls(
            store=store,
            error_handler=error_handler,
            default_priority=settings.job_default_priority,
        )

    def report_error(self, error: BaseException) -> None:
        """Forward an error to the handler, best effort."""
        if self.error_handler is None:
            return
        try:
            self.error_handler(error)
        except Exception:
            logger.warning("Error handler raised", exc_info=True)
