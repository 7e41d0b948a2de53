"""SystemState repository.

Provides data access methods for the SystemState key-value store.
"""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from artindex.core.timezone import utc_now
from artindex.models.system_state import SystemState
from artindex.repositories.dialect import upsert_insert


class SystemStateRepository:
    """Repository for SystemState key-value store.

    Provides UPSERT behavior (INSERT ... ON CONFLICT DO UPDATE) for setting state.
    """

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def get_state(self, key: str) -> Any | None:
        """Retrieve state value for a key.

        Args:
            key: State key (e.g., "indexer_last_run")

        Returns:
            Deserialized state value if found, None otherwise
        """
        result = await self.session.execute(
            select(SystemState)
            .where(SystemState.key == key)  # type: ignore[arg-type]
            .execution_options(populate_existing=True)
        )
        state = result.scalar_one_or_none()
        return state.state_value if state else None

    async def set_state(self, key: str, value: Any) -> None:
        """Set state value for a key (UPSERT).

        Args:
            key: State key (alphanumeric + underscores only)
            value: State value (must be JSON-serializable)

        Raises:
            ValueError: If key contains characters other than letters, digits and underscores
        """
        if not key.replace("_", "").isalnum():
            raise ValueError("Key must be alphanumeric with underscores only")

        now = utc_now()
        stmt = upsert_insert(self.session, SystemState).values(
            key=key,
            state_value=value,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["key"],
            set_={"state_value": value, "updated_at": now},
        )
        await self.session.execute(stmt)
        await self.session.flush()

