from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from pgque.config.logging import setup_logging
from pgque.config.settings import settings
from pgque.core.exceptions import (
    PgqueException,
    RequestContextMiddleware,
    general_exception_handler,
    http_exception_handler,
    pgque_exception_handler,
)
from pgque.core.registries import job_registry
from pgque.healthz import router as health_router
from pgque.infra.database import close_database
from pgque.jobs.registry_init import register_job_modules
from pgque.jobs.routes import router as jobs_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await close_database()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    setup_logging()
    register_job_modules(settings)

    app = FastAPI(
        title=settings.app_name,
        description="Operator API for the Postgres job queue",
        version=settings.version,
        debug=settings.debug,
        openapi_url="/v1/openapi.json" if settings.debug else None,
        docs_url="/v1/docs" if settings.debug else None,
        redoc_url="/v1/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(RequestContextMiddleware)

    if settings.debug:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(PgqueException, pgque_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(health_router, prefix="/v1", tags=["health"])
    app.include_router(jobs_router, prefix="/v1")

    # Job types are fixed once startup registration is done outside development
    if settings.environment != "development":
        job_registry.freeze()

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "pgque.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
