"""Collection entity - a contract-level grouping of artworks keyed by slug."""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from artindex.core.timezone import utc_now


class ArtistCollectionLink(SQLModel, table=True):
    """Many-to-many join between artists and the collections they contributed to."""

    __tablename__ = "artist_collections"  # type: ignore[assignment]

    artist_id: UUID = Field(foreign_key="artists.id", primary_key=True, ondelete="CASCADE")
    collection_id: UUID = Field(
        foreign_key="collections.id", primary_key=True, ondelete="CASCADE"
    )


class Collection(SQLModel, table=True):
    """Collection holds display metadata and trading statistics for one slug."""

    __tablename__ = "collections"  # type: ignore[assignment]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    slug: str = Field(max_length=255, unique=True, index=True)
    title: str = Field(max_length=500)
    description: Optional[str] = Field(default=None)
    contract_address: Optional[str] = Field(default=None, max_length=64, index=True)
    parent_contract: Optional[str] = Field(default=None, max_length=64)
    blockchain: Optional[str] = Field(default=None, max_length=32)
    website_url: Optional[str] = Field(default=None)
    project_url: Optional[str] = Field(default=None)
    image_url: Optional[str] = Field(default=None)
    banner_image_url: Optional[str] = Field(default=None)
    discord_url: Optional[str] = Field(default=None)
    telegram_url: Optional[str] = Field(default=None)
    medium_url: Optional[str] = Field(default=None)
    is_generative_art: bool = Field(default=False)
    is_shared_contract: bool = Field(default=False)
    safelist_status: Optional[str] = Field(default=None, max_length=64)
    fees: Optional[list] = Field(default=None, sa_column=Column(JSON))
    total_supply: Optional[int] = Field(default=None)
    current_supply: Optional[int] = Field(default=None)
    mint_start_date: Optional[datetime] = Field(default=None)
    mint_end_date: Optional[datetime] = Field(default=None)
    floor_price: Optional[float] = Field(default=None)
    volume_traded: Optional[float] = Field(default=None)
    external_collection_id: Optional[str] = Field(default=None, max_length=255)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
