"""
Populates the job registry at startup.

Each module listed in ``Settings.job_modules`` is imported; modules register
their job classes on import, typically with ``@job_registry.register_job``.
"""

import importlib

from pgque.config.logging import get_logger
from pgque.config.settings import Settings
from pgque.core.registries import job_registry

logger = get_logger(__name__)


def register_job_modules(settings: Settings, extra_modules: list[str] | None = None) -> list[str]:
    """Import job modules and return the registered type names."""
    modules = [*settings.job_modules, *(extra_modules or [])]

    logger.info("Registering job types", modules=modules)
    for module in modules:
        importlib.import_module(module)

    registered = job_registry.list()
    logger.info("Job types registered", registered_types=registered)
    return registered
