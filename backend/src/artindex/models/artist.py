"""Artist entity - creator profile with an append-only set of wallet addresses."""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from artindex.core.timezone import utc_now


class Artist(SQLModel, table=True):
    """Artist represents a creator resolved from one or more wallet addresses."""

    __tablename__ = "artists"  # type: ignore[assignment]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    # Lowercased first wallet address, or "name:<sha1>" for address-less artists
    identity_key: str = Field(max_length=255, unique=True, index=True)
    name: str = Field(max_length=255, unique=True, index=True)
    bio: Optional[str] = Field(default=None)
    avatar_url: Optional[str] = Field(default=None)
    profile_url: Optional[str] = Field(default=None)
    website_url: Optional[str] = Field(default=None)
    twitter_handle: Optional[str] = Field(default=None, max_length=255)
    instagram_handle: Optional[str] = Field(default=None, max_length=255)
    ens_name: Optional[str] = Field(default=None, max_length=255)
    is_verified: bool = Field(default=False)
    resolution_source: Optional[str] = Field(default=None, max_length=64)
    social_links: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class ArtistWallet(SQLModel, table=True):
    """One wallet address belonging to an artist.

    Addresses are unique across artists and stored case-normalized, so any
    address the artist has ever been seen with resolves back to the same row.
    """

    __tablename__ = "artist_wallets"  # type: ignore[assignment]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    artist_id: UUID = Field(foreign_key="artists.id", index=True, ondelete="CASCADE")
    address: str = Field(max_length=64, unique=True, index=True)
    blockchain: str = Field(default="unknown", max_length=32)
    last_indexed: datetime = Field(default_factory=utc_now)
