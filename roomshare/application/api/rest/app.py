import logging
from contextlib import asynccontextmanager

import logfire
from dishka import AsyncContainer
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from roomshare.application.api.v1.errors import map_roomshare_error
from roomshare.application.api.v1.routes import health, roommate_applications
from roomshare.application.di import create_container
from roomshare.config import Config, configure_logging
from roomshare.domain.shared.authorization.startup import validate_all_handlers
from roomshare.domain.shared.error import RoomshareError
from roomshare.infrastructure.event.worker import WorkerPool
from roomshare.infrastructure.persistence.database import rollback_session
from roomshare.util.di.fastapi import setup_dishka

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    container = app.state.dishka_container
    config = await container.get(Config)

    if config.worker.enabled:
        # Notification workers and the expiry reaper schedule
        worker_pool = await container.get(WorkerPool)
        async with worker_pool:
            yield
    else:
        logger.info("Background workers disabled")
        yield

    await container.close()


def create_app(config: Config | None = None, container: AsyncContainer | None = None) -> FastAPI:
    """Create FastAPI application.

    Schema migrations are not run here; ``roomshare serve`` and
    ``roomshare init-db`` run them before the event loop starts.
    """
    # Pydantic Settings populates from env vars at runtime
    config = config or Config()  # type: ignore[call-arg]

    # Configure logging early
    configure_logging(config.logging)
    logfire.configure(
        token=config.logging.logfire_token,
        send_to_logfire="if-token-present",
        service_name=config.server.name.lower(),
        service_version=config.server.version,
        console=False,
    )
    logger.info("Starting Roomshare server: %s v%s", config.server.name, config.server.version)

    # Validate all handlers have authorization declarations (fail fast)
    validate_all_handlers()

    app_instance = FastAPI(
        title=config.server.name,
        description=config.server.description,
        version=config.server.version,
        lifespan=lifespan,
    )

    # Instrument FastAPI for automatic tracing of HTTP requests
    logfire.instrument_httpx()
    logfire.instrument_fastapi(app_instance)

    # Setup dependency injection
    container = container or create_container(config)
    setup_dishka(container, app_instance, rollback=rollback_session)

    # Register v1 routes with /api/v1 prefix
    app_instance.include_router(health.router, prefix="/api/v1")
    app_instance.include_router(roommate_applications.router, prefix="/api/v1")

    # Global error handler - maps domain and infrastructure errors to HTTP responses
    @app_instance.exception_handler(RoomshareError)
    async def roomshare_error_handler(request: Request, exc: RoomshareError):
        http_exc = map_roomshare_error(exc)
        if http_exc.status_code >= 500:
            logger.warning(
                "%s %s failed: %s", request.method, request.url.path, exc.message
            )
        return JSONResponse(
            status_code=http_exc.status_code,
            content=http_exc.detail,
            headers=http_exc.headers,
        )

    # Global exception handler - logs all unhandled exceptions
    @app_instance.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(
            "Unhandled exception on %s %s",
            request.method,
            request.url.path,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    return app_instance
