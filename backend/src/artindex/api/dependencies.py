"""FastAPI dependencies shared by the API routers.

Everything here reads from app.state, which the application lifespan fills:
settings, the UnitOfWork factory and the provider adapters (built once so
concurrent requests share each provider's rate limiter).
"""

from typing import AsyncGenerator

from fastapi import Depends, Request

from artindex.core.config import Settings
from artindex.models.enums import Blockchain
from artindex.services.indexing.orchestrator import IndexingOrchestrator
from artindex.services.indexing.promotion import UnifiedIndexer, UowFactory
from artindex.services.providers.base import ProviderAdapter
from artindex.uow import UnitOfWork


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_uow_factory(request: Request) -> UowFactory:
    """Get UnitOfWork factory from app state.

    Example:
        >>> @router.post("/endpoint")
        >>> async def endpoint(uow_factory=Depends(get_uow_factory)):
        ...     async with await uow_factory() as uow:
        ...         await uow.artworks.count()
    """
    return request.app.state.uow_factory


async def get_uow(request: Request) -> AsyncGenerator[UnitOfWork, None]:
    """Yield a request-scoped UnitOfWork (commit on success, rollback on error)."""
    async with await request.app.state.uow_factory() as uow:
        yield uow


def get_adapters(request: Request) -> dict[Blockchain, ProviderAdapter]:
    return request.app.state.adapters


def get_indexer(
    uow_factory: UowFactory = Depends(get_uow_factory),
    settings: Settings = Depends(get_settings),
) -> UnifiedIndexer:
    return UnifiedIndexer(
        uow_factory,
        concurrency=settings.promotion_concurrency,
        batch_size=settings.queue_batch_size,
    )


def get_orchestrator(
    uow_factory: UowFactory = Depends(get_uow_factory),
    settings: Settings = Depends(get_settings),
    adapters: dict[Blockchain, ProviderAdapter] = Depends(get_adapters),
    indexer: UnifiedIndexer = Depends(get_indexer),
) -> IndexingOrchestrator:
    return IndexingOrchestrator(settings, uow_factory, adapters, indexer=indexer)
