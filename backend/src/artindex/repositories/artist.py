"""Artist repository.

Provides data access methods for Artist entities: case-insensitive wallet
lookup, append-only wallet sets, and creator upserts.
"""

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from artindex.core.timezone import utc_now
from artindex.models.artist import Artist, ArtistWallet
from artindex.models.artwork import ArtistArtworkLink
from artindex.models.collection import ArtistCollectionLink
from artindex.repositories.dialect import upsert_insert
from artindex.services.indexing.identity import artist_identity_key, normalize_address
from artindex.services.indexing.schemas import CreatorData

# Profile columns copied from CreatorData on create and merged on update
PROFILE_FIELDS = (
    "bio",
    "avatar_url",
    "profile_url",
    "website_url",
    "twitter_handle",
    "instagram_handle",
    "ens_name",
    "resolution_source",
)


class ArtistRepository:
    """Repository for Artist entities.

    Methods:
    - get_by_id: Retrieve artist by UUID
    - get_by_wallet: Case-insensitive lookup through any known wallet
    - get_by_ens_name: Case-insensitive lookup by ENS name
    - get_by_identity_key: Lookup by stable identity key
    - list_wallets: All wallet addresses of an artist
    - add_wallet: Append a wallet address (never replaces existing ones)
    - upsert_from_creator: Create or merge an artist from resolved creator data
    - link_collection / link_artwork: Additive many-to-many links
    """

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def get_by_id(self, artist_id: UUID) -> Artist | None:
        result = await self.session.execute(select(Artist).where(Artist.id == artist_id))  # type: ignore[arg-type]
        return result.scalar_one_or_none()

    async def get_by_wallet(self, address: str) -> Artist | None:
        """Retrieve artist owning a wallet address (case-insensitive).

        Args:
            address: Wallet address (EVM hex or Tezos base58)

        Returns:
            Artist if any of its wallets matches, None otherwise
        """
        result = await self.session.execute(
            select(Artist)
            .join(ArtistWallet, ArtistWallet.artist_id == Artist.id)  # type: ignore[arg-type]
            .where(func.lower(ArtistWallet.address) == func.lower(address.strip()))
        )
        return result.scalar_one_or_none()

    async def get_by_ens_name(self, ens_name: str) -> Artist | None:
        result = await self.session.execute(
            select(Artist)
            .where(func.lower(Artist.ens_name) == ens_name.strip().lower())
            .order_by(Artist.created_at.asc())  # type: ignore[attr-defined]
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_by_identity_key(self, identity_key: str) -> Artist | None:
        result = await self.session.execute(
            select(Artist).where(Artist.identity_key == identity_key)  # type: ignore[arg-type]
        )
        return result.scalar_one_or_none()

    async def list_wallets(self, artist_id: UUID) -> list[ArtistWallet]:
        result = await self.session.execute(
            select(ArtistWallet)
            .where(ArtistWallet.artist_id == artist_id)  # type: ignore[arg-type]
            .order_by(ArtistWallet.last_indexed.asc())  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())

    async def add(self, artist: Artist) -> Artist:
        self.session.add(artist)
        await self.session.flush()
        return artist

    async def add_wallet(self, artist: Artist, address: str, blockchain: str) -> bool:
        """Merge a wallet address into the artist's address set.

        Existing addresses are kept; a known address only has its last_indexed
        timestamp refreshed.

        Args:
            artist: Artist owning the address
            address: Wallet address (normalized before storage)
            blockchain: Chain the address belongs to

        Returns:
            True if the address was new for this artist, False if already present
        """
        normalized = normalize_address(address)
        result = await self.session.execute(
            select(ArtistWallet).where(
                func.lower(ArtistWallet.address) == normalized.lower()  # type: ignore[arg-type]
            )
        )
        wallet = result.scalar_one_or_none()
        if wallet is not None:
            wallet.last_indexed = utc_now()
            self.session.add(wallet)
            await self.session.flush()
            return False

        self.session.add(
            ArtistWallet(artist_id=artist.id, address=normalized, blockchain=blockchain)
        )
        await self.session.flush()
        return True

    async def unique_name(self, base_name: str) -> str:
        """Return base_name, or base_name suffixed " (n)" if it is already taken."""
        result = await self.session.execute(
            select(Artist.name).where(
                (Artist.name == base_name) | (Artist.name.like(f"{base_name} (%)"))  # type: ignore[attr-defined]
            )
        )
        taken = set(result.scalars().all())
        if base_name not in taken:
            return base_name
        counter = 2
        while f"{base_name} ({counter})" in taken:
            counter += 1
        return f"{base_name} ({counter})"

    async def upsert_from_creator(
        self, creator: CreatorData, blockchain: str
    ) -> tuple[Artist, bool]:
        """Create or update an artist from resolved creator data.

        Lookup order: any known wallet address, then ENS name, then identity
        key. A creator seen under a new wallet but the same ENS name resolves
        to the existing artist and its address set grows. On update,
        newly supplied profile values win and missing ones keep the stored
        value. The creator's wallet is merged into the artist's address set.

        Args:
            creator: Creator resolved by the normalizer
            blockchain: Chain of the observed token

        Returns:
            Tuple of (artist, created)

        Raises:
            ValueError: If the creator has neither address nor display name
        """
        display_name = creator.display_name or creator.username
        identity_key = artist_identity_key(creator.address, display_name)

        artist = None
        if creator.address:
            artist = await self.get_by_wallet(creator.address)
        if artist is None and creator.ens_name:
            artist = await self.get_by_ens_name(creator.ens_name)
        if artist is None:
            artist = await self.get_by_identity_key(identity_key)

        if artist is not None:
            for field in PROFILE_FIELDS:
                value = getattr(creator, field)
                if value:
                    setattr(artist, field, value)
            if creator.description and not creator.bio:
                artist.bio = creator.description
            artist.is_verified = artist.is_verified or creator.is_verified
            if creator.social_links:
                merged = dict(artist.social_links or {})
                merged.update(creator.social_links.model_dump(exclude_none=True))
                artist.social_links = merged
            artist.updated_at = utc_now()
            self.session.add(artist)
            await self.session.flush()
            if creator.address:
                await self.add_wallet(artist, creator.address, blockchain)
            return artist, False

        if display_name:
            base_name = display_name.strip()
        else:
            base_name = f"Artist_{normalize_address(creator.address)[-8:]}"
        name = await self.unique_name(base_name)

        artist = Artist(
            identity_key=identity_key,
            name=name,
            bio=creator.bio or creator.description,
            is_verified=creator.is_verified,
            social_links=creator.social_links.model_dump(exclude_none=True)
            if creator.social_links
            else None,
            **{f: getattr(creator, f) for f in PROFILE_FIELDS if f != "bio"},
        )
        await self.add(artist)
        if creator.address:
            await self.add_wallet(artist, creator.address, blockchain)
        return artist, True

    async def link_collection(self, artist_id: UUID, collection_id: UUID) -> None:
        """Link artist and collection; no-op if the link already exists."""
        stmt = (
            upsert_insert(self.session, ArtistCollectionLink)
            .values(artist_id=artist_id, collection_id=collection_id)
            .on_conflict_do_nothing(index_elements=["artist_id", "collection_id"])
        )
        await self.session.execute(stmt)
        await self.session.flush()

    async def link_artwork(self, artist_id: UUID, artwork_id: UUID) -> None:
        """Link artist and artwork; no-op if the link already exists. Never unlinks."""
        stmt = (
            upsert_insert(self.session, ArtistArtworkLink)
            .values(artist_id=artist_id, artwork_id=artwork_id)
            .on_conflict_do_nothing(index_elements=["artist_id", "artwork_id"])
        )
        await self.session.execute(stmt)
        await self.session.flush()

    async def list_for_artwork(self, artwork_id: UUID) -> list[Artist]:
        result = await self.session.execute(
            select(Artist)
            .join(ArtistArtworkLink, ArtistArtworkLink.artist_id == Artist.id)  # type: ignore[arg-type]
            .where(ArtistArtworkLink.artwork_id == artwork_id)  # type: ignore[arg-type]
            .order_by(Artist.created_at.asc())  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())

    async def list_for_collection(self, collection_id: UUID) -> list[Artist]:
        result = await self.session.execute(
            select(Artist)
            .join(ArtistCollectionLink, ArtistCollectionLink.artist_id == Artist.id)  # type: ignore[arg-type]
            .where(ArtistCollectionLink.collection_id == collection_id)  # type: ignore[arg-type]
        )
        return list(result.scalars().all())

    async def count(self) -> int:
        result = await self.session.execute(select(func.count()).select_from(Artist))
        return int(result.scalar_one())
