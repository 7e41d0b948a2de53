"""Artwork repository.

Artworks are keyed by (contract_address, token_id). Promotion upserts every
flattened IndexerData field; deletion removes artist links first.
"""

from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from artindex.core.timezone import utc_now
from artindex.models.artwork import ArtistArtworkLink, Artwork
from artindex.services.indexing.identity import artwork_uid
from artindex.services.indexing.schemas import IndexerData

PLACEHOLDER_TITLE = "Untitled"

# IndexerData fields copied verbatim onto Artwork columns
FLATTENED_FIELDS = (
    "description",
    "image_url",
    "animation_url",
    "generator_url",
    "thumbnail_url",
    "metadata_url",
    "mime",
    "is_generative_art",
    "token_standard",
    "supply",
    "mint_date",
    "features",
)


class ArtworkRepository:
    """Repository for Artwork entities."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def get_by_id(self, artwork_id: UUID) -> Artwork | None:
        result = await self.session.execute(select(Artwork).where(Artwork.id == artwork_id))  # type: ignore[arg-type]
        return result.scalar_one_or_none()

    async def get_by_contract_token(self, contract_address: str, token_id: str) -> Artwork | None:
        """Retrieve artwork by its identity key.

        Args:
            contract_address: Contract address as stored (case-normalized)
            token_id: Token ID string

        Returns:
            Artwork if found, None otherwise
        """
        result = await self.session.execute(
            select(Artwork).where(
                Artwork.contract_address == contract_address,  # type: ignore[arg-type]
                Artwork.token_id == token_id,  # type: ignore[arg-type]
            )
        )
        return result.scalar_one_or_none()

    async def upsert(
        self, data: IndexerData, collection_id: UUID | None = None
    ) -> tuple[Artwork, bool]:
        """Create the artwork for (contract, token) or update it in place.

        Newly supplied values replace stored ones; fields absent from the new
        observation keep their stored value. A placeholder title never
        overwrites a real one.

        Args:
            data: Canonical token data with contract_address and token_id set
            collection_id: Collection to link (None keeps the existing link)

        Returns:
            Tuple of (artwork, created)

        Raises:
            ValueError: If contract_address or token_id is missing
        """
        if not data.contract_address or not data.token_id:
            raise ValueError("contract_address and token_id are required")

        artwork = await self.get_by_contract_token(data.contract_address, data.token_id)
        created = artwork is None
        if artwork is None:
            artwork = Artwork(
                uid=artwork_uid(data.contract_address, data.token_id),
                contract_address=data.contract_address,
                token_id=data.token_id,
                title=data.title or PLACEHOLDER_TITLE,
            )
        elif data.title and (data.title != PLACEHOLDER_TITLE or not artwork.title):
            artwork.title = data.title

        for field in FLATTENED_FIELDS:
            value = getattr(data, field)
            if value is not None:
                setattr(artwork, field, value)
        if data.blockchain and data.blockchain != "unknown":
            artwork.blockchain = data.blockchain
        if data.dimensions:
            artwork.width = data.dimensions.width
            artwork.height = data.dimensions.height
        if data.attributes:
            artwork.attributes = [a.model_dump(mode="json") for a in data.attributes]
        if collection_id is not None:
            artwork.collection_id = collection_id
        artwork.updated_at = utc_now()

        self.session.add(artwork)
        await self.session.flush()
        return artwork, created

    async def get_existing_ids(self, artwork_ids: list[UUID]) -> list[UUID]:
        if not artwork_ids:
            return []
        result = await self.session.execute(
            select(Artwork.id).where(Artwork.id.in_(artwork_ids))  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())

    async def delete_many(self, artwork_ids: list[UUID]) -> int:
        """Delete artworks and their artist links.

        Staged records referencing these artworks must be decoupled by the
        caller within the same transaction.

        Args:
            artwork_ids: Artwork UUIDs to delete

        Returns:
            Number of artworks deleted
        """
        if not artwork_ids:
            return 0
        await self.session.execute(
            delete(ArtistArtworkLink).where(ArtistArtworkLink.artwork_id.in_(artwork_ids))  # type: ignore[attr-defined]
        )
        result = await self.session.execute(
            delete(Artwork).where(Artwork.id.in_(artwork_ids))  # type: ignore[attr-defined]
        )
        await self.session.flush()
        return result.rowcount or 0  # type: ignore[attr-defined]

    async def count(self) -> int:
        result = await self.session.execute(select(func.count()).select_from(Artwork))
        return int(result.scalar_one())
