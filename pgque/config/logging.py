import logging
import sys
from typing import Any

import structlog

from .settings import Settings, settings as default_settings

# Chatty third-party loggers kept at WARNING unless the app runs at DEBUG
NOISY_LOGGERS = ("sqlalchemy.engine", "asyncpg", "uvicorn.access")


def _processors(settings: Settings) -> list[Any]:
    processors: list[Any] = [
        # Job and request context bound through contextvars
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.format_exc_info,
    ]
    if settings.debug:
        processors.append(
            structlog.processors.CallsiteParameterAdder(
                parameters=[
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                ]
            )
        )
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.JSONRenderer())
    return processors


def setup_logging(settings: Settings | None = None) -> None:
    """Configure structlog for the API process and worker processes alike."""
    settings = settings or default_settings
    level = getattr(logging, settings.log_level)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level if level == logging.DEBUG else logging.WARNING)

    structlog.configure(
        processors=_processors(settings),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.WriteLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = __name__) -> structlog.BoundLogger:
    return structlog.get_logger(name)


def add_request_context(request_id: str, **context: Any) -> None:
    """Start a fresh log context for an HTTP request."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, **context)


def bind_job_context(**context: Any) -> None:
    """Attach job fields to every log line emitted during the current attempt."""
    structlog.contextvars.bind_contextvars(**context)


def clear_job_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)
