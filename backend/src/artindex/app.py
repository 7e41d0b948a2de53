"""FastAPI application factory."""

import asyncio
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Response, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from artindex.api.routes import admin
from artindex.core import timezone  # noqa: F401
from artindex.core.config import Settings, configure_logging
from artindex.core.database import setup_db_session
from artindex.services.providers.factory import build_adapters, create_http_client
from artindex.uow import create_uow_factory
from artindex.workers.promotion_worker import run_promotion_worker

logger = structlog.get_logger()


def create_resilient_worker(
    coro_func, uow_factory, settings, worker_name: str, shutdown_event: asyncio.Event
):
    """Create a worker with automatic restart on failure.

    Args:
        coro_func: Worker coroutine function (e.g., run_promotion_worker)
        uow_factory: UnitOfWork factory handed to the worker
        settings: Application settings
        worker_name: Human-readable worker name for logging
        shutdown_event: Event to signal graceful shutdown

    Returns:
        Initial task handle (re-created on crash until shutdown)
    """
    RESTART_DELAY = 1

    def on_worker_done(task: asyncio.Task):
        if shutdown_event.is_set():
            logger.info("worker.shutdown_complete", worker=worker_name)
            return

        if task.cancelled():
            logger.info("worker.cancelled", worker=worker_name)
            return

        exc = task.exception()
        if exc:
            logger.error(
                "worker.crashed",
                worker=worker_name,
                error=str(exc),
                error_type=type(exc).__name__,
                retry_in_seconds=RESTART_DELAY,
                exc_info=exc,
            )
        else:
            logger.warning(
                "worker.stopped_unexpectedly",
                worker=worker_name,
                retry_in_seconds=RESTART_DELAY,
            )

        async def restart_worker():
            await asyncio.sleep(RESTART_DELAY)
            if shutdown_event.is_set():
                return

            logger.info("worker.restarting", worker=worker_name)
            new_task = asyncio.create_task(coro_func(uow_factory, settings))
            new_task.add_done_callback(on_worker_done)

        asyncio.create_task(restart_worker())

    task = asyncio.create_task(coro_func(uow_factory, settings))
    task.add_done_callback(on_worker_done)
    return task


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager.

    - Startup: settings, logging, session and UoW factories, the shared HTTP
      client with its provider adapters, and the promotion worker
    - Shutdown: stop the worker, close the HTTP client
    """
    settings = app.state.settings
    configure_logging(settings)

    session_factory = setup_db_session(settings.database_url, settings.db_pool_size)
    uow_factory = create_uow_factory(session_factory)
    http_client = create_http_client(settings)

    app.state.session_factory = session_factory
    app.state.uow_factory = uow_factory
    app.state.http_client = http_client
    app.state.adapters = build_adapters(settings, http_client)

    shutdown_event = asyncio.Event()
    worker_task = None
    if settings.promotion_worker_enabled:
        worker_task = create_resilient_worker(
            run_promotion_worker, uow_factory, settings, "promotion", shutdown_event
        )

    logger.info(
        "application.startup",
        db_url=settings.database_url.split("@")[-1],
        wallets=len(settings.indexed_wallets),
        providers=sorted(chain.value for chain in app.state.adapters),
        promotion_worker=settings.promotion_worker_enabled,
    )

    yield

    logger.info("application.shutdown")
    shutdown_event.set()

    if worker_task is not None:
        worker_task.cancel()
        await asyncio.gather(worker_task, return_exceptions=True)

    await http_client.aclose()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        settings: Explicit settings (tests); loaded from the environment when omitted

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or Settings()  # type: ignore[call-arg]

    app = FastAPI(
        title="artindex API",
        description="Multi-provider artwork indexing and catalog promotion",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(admin.router)  # prefix="/api/admin" in definition

    @app.get("/health")
    async def health_check(response: Response):
        """Health check endpoint with database connectivity test.

        Returns:
            200: {"status": "healthy"} if database connection succeeds
            503: {"status": "unhealthy", "error": {...}} if database connection fails
        """
        try:
            async with app.state.session_factory() as session:
                result = await session.execute(text("SELECT 1"))
                result.scalar()

            logger.debug("health_check.success")
            return {"status": "healthy"}

        except Exception as e:
            logger.error(
                "health_check.failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
            return {
                "status": "unhealthy",
                "error": {
                    "type": type(e).__name__,
                    "message": str(e),
                },
            }

    return app


# Create app instance for uvicorn
app = create_app()
