"""SystemState entity - key-value store for operational state (e.g. last indexer run)."""

from datetime import datetime

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from artindex.core.timezone import utc_now


class SystemState(SQLModel, table=True):
    """SystemState is a key-value store for operational state."""

    __tablename__ = "system_state"  # type: ignore[assignment]

    key: str = Field(primary_key=True, max_length=255)
    state_value: dict = Field(sa_column=Column(JSON))
    updated_at: datetime = Field(default_factory=utc_now)
