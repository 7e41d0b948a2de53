"""Unit of Work pattern for artindex.

Provides transaction management with automatic commit/rollback and access to all repositories.
"""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from artindex.repositories.artist import ArtistRepository
from artindex.repositories.artwork import ArtworkRepository
from artindex.repositories.artwork_index import ArtworkIndexRepository
from artindex.repositories.collection import CollectionRepository
from artindex.repositories.system_state import SystemStateRepository

logger = structlog.get_logger()


class UnitOfWork:
    """Unit of Work pattern implementation.

    Manages one database transaction and exposes every repository on it.
    Use as async context manager for automatic commit/rollback.

    Example:
        async with await uow_factory() as uow:
            record = await uow.artwork_index.get_by_id(index_id)
            record.mark_processing()
            # Commits on successful exit, rolls back on exception
    """

    def __init__(self, session: AsyncSession):
        """Initialize UnitOfWork with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

        self.artists = ArtistRepository(session)
        self.collections = CollectionRepository(session)
        self.artworks = ArtworkRepository(session)
        self.artwork_index = ArtworkIndexRepository(session)
        self.system_state = SystemStateRepository(session)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Commit on clean exit, roll back otherwise, and always close the session.

        Returns:
            False: Exceptions are re-raised after rollback
        """
        try:
            if exc_type is None:
                await self.session.commit()
                logger.debug("transaction.committed")
            else:
                await self.session.rollback()
                logger.info("transaction.rolled_back", exc_type=exc_type.__name__)
        finally:
            await self.session.close()

        return False


def create_uow_factory(session_factory: async_sessionmaker[AsyncSession]):
    """Create a factory function that produces UnitOfWork instances.

    Args:
        session_factory: SQLAlchemy async session factory

    Returns:
        Coroutine function creating a UnitOfWork on a fresh session

    Example:
        session_factory = setup_db_session(db_url)
        uow_factory = create_uow_factory(session_factory)

        async with await uow_factory() as uow:
            await uow.artworks.count()
    """

    async def _create_uow():
        """Create a new UnitOfWork instance with a new session."""
        return UnitOfWork(session_factory())

    return _create_uow
