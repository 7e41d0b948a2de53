"""ArtworkIndex repository.

Staging store for normalized provider observations. Writes are keyed by
(contract_address, token_id, observation_type) so re-running ingestion is
always safe; listings collapse rows that refer to the same token.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from artindex.core.timezone import utc_now
from artindex.models.artwork_index import ArtworkIndex
from artindex.models.enums import ImportStatus, ObservationType
from artindex.repositories.dialect import upsert_insert


@dataclass
class CollapsedIndexEntry:
    """One token in the staged listing, represented by its preferred row."""

    record: ArtworkIndex
    observation_types: list[str] = field(default_factory=list)
    row_count: int = 1


def _display_rank(row: ArtworkIndex) -> tuple:
    # Linked rows carry post-promotion data; "created" beats "owned"; then freshest
    return (
        row.artwork_id is not None,
        row.observation_type == ObservationType.CREATED.value,
        row.last_seen_at,
    )


class ArtworkIndexRepository:
    """Repository for staged ArtworkIndex records.

    Methods:
    - upsert_staged: Insert or refresh a staged observation (keeps promotion state)
    - get_pending: Oldest-first promotion queue
    - list_collapsed: Listing grouped by (contract, token)
    - count_by_status: Queue statistics
    - decouple_artworks: Sever back-references to deleted artworks
    - reset_failed / recover_stale_processing: Manual and startup recovery
    """

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def get_by_id(self, index_id: UUID) -> ArtworkIndex | None:
        result = await self.session.execute(
            select(ArtworkIndex)
            .where(ArtworkIndex.id == index_id)  # type: ignore[arg-type]
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_key(
        self, contract_address: str, token_id: str, observation_type: str
    ) -> ArtworkIndex | None:
        result = await self.session.execute(
            select(ArtworkIndex)
            .where(
                ArtworkIndex.contract_address == contract_address,  # type: ignore[arg-type]
                ArtworkIndex.token_id == token_id,  # type: ignore[arg-type]
                ArtworkIndex.observation_type == observation_type,  # type: ignore[arg-type]
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_token(self, contract_address: str, token_id: str) -> list[ArtworkIndex]:
        """All staged rows (any observation type) for one token."""
        result = await self.session.execute(
            select(ArtworkIndex)
            .where(
                ArtworkIndex.contract_address == contract_address,  # type: ignore[arg-type]
                ArtworkIndex.token_id == token_id,  # type: ignore[arg-type]
            )
            .order_by(ArtworkIndex.created_at.asc())  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())

    async def upsert_staged(
        self,
        contract_address: str,
        token_id: str,
        observation_type: str,
        normalized_data: dict[str, Any],
        data_source: str,
        blockchain: str,
        wallet_address: str | None = None,
    ) -> tuple[ArtworkIndex, bool]:
        """Stage an observation with INSERT ... ON CONFLICT DO UPDATE.

        On conflict the payload, provenance and last_seen_at are replaced
        (latest observation wins) while import_status and artwork_id are kept,
        so an already promoted token stays linked.

        Args:
            contract_address: Case-normalized contract address
            token_id: Token ID string
            observation_type: "owned" or "created"
            normalized_data: Serialized IndexerData
            data_source: Provider tag
            blockchain: Chain identifier
            wallet_address: Wallet whose query discovered the token

        Returns:
            Tuple of (staged record, created)
        """
        existing = await self.get_by_key(contract_address, token_id, observation_type)

        now = utc_now()
        stmt = upsert_insert(self.session, ArtworkIndex).values(
            id=uuid4(),
            contract_address=contract_address,
            token_id=token_id,
            observation_type=observation_type,
            data_source=data_source,
            blockchain=blockchain,
            wallet_address=wallet_address,
            normalized_data=normalized_data,
            import_status=ImportStatus.PENDING,
            attempt_count=0,
            created_at=now,
            updated_at=now,
            last_seen_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["contract_address", "token_id", "observation_type"],
            set_={
                "normalized_data": stmt.excluded.normalized_data,
                "data_source": stmt.excluded.data_source,
                "blockchain": stmt.excluded.blockchain,
                "wallet_address": stmt.excluded.wallet_address,
                "last_seen_at": now,
                "updated_at": now,
            },
        )
        await self.session.execute(stmt)
        await self.session.flush()

        record = await self.get_by_key(contract_address, token_id, observation_type)
        if record is None:
            raise RuntimeError(
                f"Staged record {contract_address}:{token_id} ({observation_type}) "
                "vanished after upsert"
            )
        return record, existing is None

    async def get_pending(
        self, limit: int = 50, since: datetime | None = None
    ) -> list[ArtworkIndex]:
        """Retrieve the promotion queue, oldest first.

        Args:
            limit: Maximum number of rows (default: 50)
            since: Only rows observed at or after this time

        Returns:
            Pending staged records ordered by created_at ASC
        """
        query = select(ArtworkIndex).where(
            ArtworkIndex.import_status == ImportStatus.PENDING  # type: ignore[arg-type]
        )
        if since is not None:
            query = query.where(ArtworkIndex.last_seen_at >= since)  # type: ignore[arg-type]
        result = await self.session.execute(
            query.order_by(ArtworkIndex.created_at.asc()).limit(limit)  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())

    async def list_collapsed(
        self,
        status: ImportStatus | None = None,
        search: str | None = None,
        limit: int = 100,
        offset: int = 0,
        scan_limit: int = 5000,
    ) -> tuple[list[CollapsedIndexEntry], int]:
        """List staged tokens, one entry per (contract, token).

        Rows are grouped client-side. The representative row is the one linked
        to an Artwork, then a "created" observation, then the most recently seen.

        Args:
            status: Only rows in this import status
            search: Case-insensitive match on contract, token ID, wallet or payload text
            limit: Page size after collapsing
            offset: Entries to skip after collapsing
            scan_limit: Upper bound on rows read before grouping

        Returns:
            Tuple of (entries ordered by most recently seen, total collapsed count)
        """
        query = select(ArtworkIndex)
        if status is not None:
            query = query.where(ArtworkIndex.import_status == status)  # type: ignore[arg-type]
        if search:
            pattern = f"%{search.strip()}%"
            query = query.where(
                or_(
                    ArtworkIndex.contract_address.ilike(pattern),  # type: ignore[attr-defined]
                    ArtworkIndex.token_id.ilike(pattern),  # type: ignore[attr-defined]
                    ArtworkIndex.wallet_address.ilike(pattern),  # type: ignore[union-attr]
                    cast(ArtworkIndex.normalized_data, String).ilike(pattern),
                )
            )
        result = await self.session.execute(
            query.order_by(ArtworkIndex.last_seen_at.desc()).limit(scan_limit)  # type: ignore[attr-defined]
        )

        groups: dict[tuple[str, str], list[ArtworkIndex]] = {}
        for row in result.scalars().all():
            groups.setdefault((row.contract_address, row.token_id), []).append(row)

        entries = []
        for rows in groups.values():
            entries.append(
                CollapsedIndexEntry(
                    record=max(rows, key=_display_rank),
                    observation_types=sorted({r.observation_type for r in rows}),
                    row_count=len(rows),
                )
            )
        entries.sort(key=lambda e: e.record.last_seen_at, reverse=True)
        return entries[offset : offset + limit], len(entries)

    async def count_by_status(self) -> dict[str, int]:
        """Count staged rows per import status (every status present, zero-filled)."""
        result = await self.session.execute(
            select(ArtworkIndex.import_status, func.count()).group_by(ArtworkIndex.import_status)
        )
        counts = {status.value: 0 for status in ImportStatus}
        for status, count in result.all():
            counts[ImportStatus(status).value] = count
        return counts

    async def count_distinct_tokens(self) -> int:
        subquery = (
            select(ArtworkIndex.contract_address, ArtworkIndex.token_id)
            .distinct()
            .subquery()
        )
        result = await self.session.execute(select(func.count()).select_from(subquery))
        return int(result.scalar_one())

    async def decouple_artworks(self, artwork_ids: list[UUID]) -> int:
        """Clear back-references to the given artworks and return rows to pending.

        Args:
            artwork_ids: Artworks about to be deleted

        Returns:
            Number of staged records decoupled
        """
        if not artwork_ids:
            return 0
        result = await self.session.execute(
            select(ArtworkIndex).where(ArtworkIndex.artwork_id.in_(artwork_ids))  # type: ignore[union-attr]
        )
        records = list(result.scalars().all())
        for record in records:
            record.decouple()
            self.session.add(record)
        await self.session.flush()
        return len(records)

    async def reset_failed(self, index_ids: list[UUID] | None = None) -> int:
        """Move failed records back to pending for another promotion attempt.

        Args:
            index_ids: Restrict the reset to these records (None resets all failed)

        Returns:
            Number of records reset
        """
        query = select(ArtworkIndex).where(
            ArtworkIndex.import_status == ImportStatus.FAILED  # type: ignore[arg-type]
        )
        if index_ids:
            query = query.where(ArtworkIndex.id.in_(index_ids))  # type: ignore[attr-defined]
        result = await self.session.execute(query)
        records = list(result.scalars().all())
        for record in records:
            record.reset_to_pending()
            record.error_message = None
            self.session.add(record)
        await self.session.flush()
        return len(records)

    async def recover_stale_processing(self, older_than: datetime) -> int:
        """Return records stuck in processing (e.g. after a crash) to pending.

        Args:
            older_than: Records whose last attempt started before this time are stale

        Returns:
            Number of records recovered
        """
        result = await self.session.execute(
            select(ArtworkIndex).where(
                ArtworkIndex.import_status == ImportStatus.PROCESSING,  # type: ignore[arg-type]
                or_(
                    ArtworkIndex.last_attempt_at.is_(None),  # type: ignore[union-attr]
                    ArtworkIndex.last_attempt_at < older_than,  # type: ignore[operator]
                ),
            )
        )
        records = list(result.scalars().all())
        for record in records:
            record.reset_to_pending()
            self.session.add(record)
        await self.session.flush()
        return len(records)
