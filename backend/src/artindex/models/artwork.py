"""Artwork entity - a promoted token keyed by (contract_address, token_id)."""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel

from artindex.core.timezone import utc_now


class ArtistArtworkLink(SQLModel, table=True):
    """Many-to-many join between artists and artworks. Links are only ever added."""

    __tablename__ = "artist_artworks"  # type: ignore[assignment]

    artist_id: UUID = Field(foreign_key="artists.id", primary_key=True, ondelete="CASCADE")
    artwork_id: UUID = Field(foreign_key="artworks.id", primary_key=True, ondelete="CASCADE")


class Artwork(SQLModel, table=True):
    """Artwork stores every canonical token field flattened into columns."""

    __tablename__ = "artworks"  # type: ignore[assignment]
    __table_args__ = (
        UniqueConstraint("contract_address", "token_id", name="uq_artworks_contract_token"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    uid: str = Field(max_length=255, unique=True, index=True)
    contract_address: str = Field(max_length=64, index=True)
    token_id: str = Field(max_length=128)
    blockchain: str = Field(default="unknown", max_length=32)
    token_standard: Optional[str] = Field(default=None, max_length=32)
    title: str = Field(max_length=500)
    description: Optional[str] = Field(default=None)
    image_url: Optional[str] = Field(default=None)
    animation_url: Optional[str] = Field(default=None)
    generator_url: Optional[str] = Field(default=None)
    thumbnail_url: Optional[str] = Field(default=None)
    metadata_url: Optional[str] = Field(default=None)
    mime: Optional[str] = Field(default=None, max_length=128)
    is_generative_art: bool = Field(default=False)
    supply: Optional[int] = Field(default=None)
    mint_date: Optional[datetime] = Field(default=None)
    width: Optional[int] = Field(default=None)
    height: Optional[int] = Field(default=None)
    attributes: Optional[list] = Field(default=None, sa_column=Column(JSON))
    features: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    collection_id: Optional[UUID] = Field(
        default=None, foreign_key="collections.id", index=True, ondelete="SET NULL"
    )
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
