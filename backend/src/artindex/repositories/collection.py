"""Collection repository.

Collections are keyed by slug. Upserts merge field by field: a newly supplied
non-empty value replaces the stored one, a missing value keeps it.
"""

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from artindex.core.timezone import utc_now
from artindex.models.collection import Collection
from artindex.services.indexing.schemas import CollectionData

# CollectionData fields that map one-to-one onto Collection columns
MERGED_FIELDS = (
    "description",
    "contract_address",
    "website_url",
    "project_url",
    "image_url",
    "banner_image_url",
    "discord_url",
    "telegram_url",
    "medium_url",
    "safelist_status",
    "fees",
    "total_supply",
    "current_supply",
    "mint_start_date",
    "mint_end_date",
    "floor_price",
    "volume_traded",
    "external_collection_id",
)


class CollectionRepository:
    """Repository for Collection entities."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def get_by_id(self, collection_id: UUID) -> Collection | None:
        result = await self.session.execute(
            select(Collection).where(Collection.id == collection_id)  # type: ignore[arg-type]
        )
        return result.scalar_one_or_none()

    async def get_by_slug(self, slug: str) -> Collection | None:
        """Retrieve collection by slug.

        Args:
            slug: Unique collection slug

        Returns:
            Collection if found, None otherwise
        """
        result = await self.session.execute(
            select(Collection).where(Collection.slug == slug)  # type: ignore[arg-type]
        )
        return result.scalar_one_or_none()

    async def upsert(
        self, data: CollectionData, blockchain: str | None = None
    ) -> tuple[Collection, bool]:
        """Create a collection or merge new data into the existing one.

        Args:
            data: Canonical collection data (slug required)
            blockchain: Chain of the token the collection was observed through

        Returns:
            Tuple of (collection, created)
        """
        collection = await self.get_by_slug(data.slug)
        created = collection is None
        if collection is None:
            collection = Collection(
                slug=data.slug,
                title=data.title or data.slug,
                parent_contract=data.parent_contract or data.contract_address,
                blockchain=data.chain_identifier or blockchain,
            )

        for field in MERGED_FIELDS:
            value = getattr(data, field)
            if value is not None and value != "":
                setattr(collection, field, value)
        if not created:
            if data.title:
                collection.title = data.title
            if data.parent_contract:
                collection.parent_contract = data.parent_contract
            if data.chain_identifier or blockchain:
                collection.blockchain = data.chain_identifier or blockchain
        # Flags only ever turn on
        collection.is_generative_art = collection.is_generative_art or data.is_generative_art
        collection.is_shared_contract = collection.is_shared_contract or data.is_shared_contract
        collection.updated_at = utc_now()

        self.session.add(collection)
        await self.session.flush()
        return collection, created

    async def count(self) -> int:
        result = await self.session.execute(select(func.count()).select_from(Collection))
        return int(result.scalar_one())
