"""Dialect-matched INSERT construct for ON CONFLICT upserts.

PostgreSQL runs in production; SQLite backs the local test suite. Both
dialects expose the same on_conflict_do_update / on_conflict_do_nothing API.
"""

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession


def upsert_insert(session: AsyncSession, table):
    """Return an INSERT for ``table`` that supports ON CONFLICT clauses.

    Raises:
        NotImplementedError: For dialects without ON CONFLICT support
    """
    dialect = session.bind.dialect.name  # type: ignore[union-attr]
    if dialect == "postgresql":
        return postgresql.insert(table)
    if dialect == "sqlite":
        return sqlite.insert(table)
    raise NotImplementedError(f"Upserts are not supported on dialect {dialect}")
