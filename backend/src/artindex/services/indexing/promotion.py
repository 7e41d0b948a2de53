"""Promotion engine: staged ArtworkIndex records into Artist/Collection/Artwork.

Each entity upsert runs in its own unit of work, so an Artist created before a
later failure is kept. Every upsert is keyed by an identity key, which makes a
retry against partially promoted data safe.
"""

import asyncio
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable
from uuid import UUID

import structlog
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError

from artindex.models.artwork_index import ArtworkIndex, InvalidStateTransition
from artindex.models.enums import Blockchain, DataSource, ImportStatus, ObservationType
from artindex.services.exceptions import (
    IndexRecordNotFoundError,
    MissingTokenIdentityError,
    PermanentError,
)
from artindex.services.indexing.normalizer import normalize
from artindex.services.indexing.schemas import IndexerData
from artindex.services.providers.base import ProviderRecord
from artindex.uow import UnitOfWork

logger = structlog.get_logger()

UowFactory = Callable[[], Awaitable[UnitOfWork]]

# Storage-boundary failures abort a run instead of failing one record
STORAGE_ERRORS = (OperationalError, InterfaceError)


@dataclass
class PromotionResult:
    """Outcome of promoting one staged record."""

    index_id: UUID
    success: bool = False
    artwork_id: UUID | None = None
    artist_id: UUID | None = None
    collection_id: UUID | None = None
    artwork_created: bool = False
    errors: list[str] = field(default_factory=list)


@dataclass
class QueueResult:
    """Aggregated outcome of one promotion queue pass."""

    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    artworks_created: int = 0
    results: list[PromotionResult] = field(default_factory=list)

    @property
    def errors(self) -> list[str]:
        return [f"{r.index_id}: {e}" for r in self.results for e in r.errors]

    def summary(self) -> dict[str, Any]:
        return {
            "processed": self.processed,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "artworks_created": self.artworks_created,
            "errors": self.errors,
        }


async def stage_indexer_data(
    uow: UnitOfWork,
    data: IndexerData,
    source: DataSource,
    observation_type: ObservationType,
    wallet_address: str | None = None,
) -> tuple[ArtworkIndex, bool]:
    """Write one normalized record to the staging store.

    Raises:
        MissingTokenIdentityError: If the record has no contract address or token ID
    """
    if not data.contract_address or not data.token_id:
        raise MissingTokenIdentityError("Record has no contractAddress/tokenId")
    return await uow.artwork_index.upsert_staged(
        contract_address=data.contract_address,
        token_id=data.token_id,
        observation_type=observation_type.value,
        normalized_data=data.to_payload(),
        data_source=source.value,
        blockchain=data.blockchain,
        wallet_address=wallet_address or None,
    )


def manual_record(payload: dict[str, Any]) -> tuple[ProviderRecord, ObservationType]:
    """Wrap an admin-supplied IndexerData-like dict as a tagged provider record."""
    observation_type = ObservationType(
        payload.get("observationType")
        or payload.get("observation_type")
        or ObservationType.OWNED.value
    )
    record = ProviderRecord(
        source=DataSource.MANUAL,
        blockchain=Blockchain.parse(payload.get("blockchain")),
        observation_type=observation_type,
        wallet_address=payload.get("walletAddress") or payload.get("wallet_address") or "",
        contract_address=payload.get("contractAddress") or payload.get("contract_address"),
        token_id=_token_id(payload),
        payload=payload,
    )
    return record, observation_type


def _token_id(payload: dict[str, Any]) -> str | None:
    value = payload.get("tokenId", payload.get("token_id"))
    return None if value is None or value == "" else str(value)


class UnifiedIndexer:
    """Promotes staged records into the catalog.

    Per record the state machine is pending → processing → imported | failed.
    Records already imported (or left processing by a crashed run) are moved
    back through processing and re-promoted idempotently.
    """

    def __init__(self, uow_factory: UowFactory, concurrency: int = 4, batch_size: int = 50):
        """Initialize the promotion engine.

        Args:
            uow_factory: Coroutine factory returning a fresh UnitOfWork
            concurrency: Default worker bound for process_queue
            batch_size: Default queue pass size
        """
        self.uow_factory = uow_factory
        self.concurrency = max(1, concurrency)
        self.batch_size = batch_size

    async def process_indexed_data(self, index_id: UUID) -> PromotionResult:
        """Promote one staged record.

        Args:
            index_id: ArtworkIndex row to promote

        Returns:
            PromotionResult; failures are recorded on the row, not raised

        Raises:
            OperationalError, InterfaceError: Storage unreachable
        """
        result = PromotionResult(index_id=index_id)

        try:
            data = await self._begin(index_id)
        except (IndexRecordNotFoundError, InvalidStateTransition, ValueError) as e:
            # Not found, failed-and-not-reset, or invalid transition: row is left as is
            result.errors.append(str(e))
            logger.warning("promotion.skipped", index_id=str(index_id), error=str(e))
            return result

        log = logger.bind(index_id=str(index_id), uid=data.uid)
        log.info("promotion.started")

        try:
            if not data.contract_address or not data.token_id:
                raise MissingTokenIdentityError("Staged record has no contract address or token ID")

            artist_id = None
            if data.creator:
                artist_id = await self._with_retry(self._upsert_artist, data)
                result.artist_id = artist_id

            collection_id = None
            if data.collection:
                collection_id = await self._with_retry(self._upsert_collection, data, artist_id)
                result.collection_id = collection_id

            artwork_id, created = await self._with_retry(
                self._upsert_artwork, data, collection_id, artist_id
            )
            result.artwork_id = artwork_id
            result.artwork_created = created

            async with await self.uow_factory() as uow:
                record = await uow.artwork_index.get_by_id(index_id)
                if record is None:
                    raise IndexRecordNotFoundError(f"Staged record {index_id} disappeared")
                record.mark_imported(artwork_id)
                uow.session.add(record)

        except asyncio.CancelledError:
            raise
        except STORAGE_ERRORS:
            raise
        except Exception as e:
            message = f"{type(e).__name__}: {e}"
            result.errors.append(message)
            await self._mark_failed(index_id, message)
            log.error("promotion.failed", error=str(e), error_type=type(e).__name__)
            return result

        result.success = True
        log.info(
            "promotion.succeeded",
            artwork_id=str(result.artwork_id),
            artist_id=str(result.artist_id) if result.artist_id else None,
            collection_id=str(result.collection_id) if result.collection_id else None,
            artwork_created=result.artwork_created,
        )
        return result

    async def _begin(self, index_id: UUID) -> IndexerData:
        """Move the record to processing and decode its payload."""
        async with await self.uow_factory() as uow:
            record = await uow.artwork_index.get_by_id(index_id)
            if record is None:
                raise IndexRecordNotFoundError(f"Staged record {index_id} not found")
            if record.import_status != ImportStatus.PROCESSING:
                record.mark_processing()
            uow.session.add(record)
            payload = dict(record.normalized_data)

        try:
            return IndexerData.model_validate(payload)
        except ValidationError as e:
            await self._mark_failed(index_id, f"Invalid staged payload: {e}")
            raise ValueError(f"Invalid staged payload: {e}") from e

    async def _with_retry(self, step: Callable[..., Awaitable[Any]], *args: Any) -> Any:
        """Run an upsert step, retrying once when a concurrent insert won the race."""
        try:
            return await step(*args)
        except IntegrityError as e:
            logger.info("promotion.identity_conflict_retry", step=step.__name__, error=str(e.orig))
            return await step(*args)

    async def _upsert_artist(self, data: IndexerData) -> UUID:
        async with await self.uow_factory() as uow:
            artist, _ = await uow.artists.upsert_from_creator(data.creator, data.blockchain)  # type: ignore[arg-type]
            return artist.id

    async def _upsert_collection(self, data: IndexerData, artist_id: UUID | None) -> UUID:
        async with await self.uow_factory() as uow:
            collection, _ = await uow.collections.upsert(data.collection, data.blockchain)  # type: ignore[arg-type]
            if artist_id is not None:
                await uow.artists.link_collection(artist_id, collection.id)
            return collection.id

    async def _upsert_artwork(
        self, data: IndexerData, collection_id: UUID | None, artist_id: UUID | None
    ) -> tuple[UUID, bool]:
        async with await self.uow_factory() as uow:
            artwork, created = await uow.artworks.upsert(data, collection_id)
            if artist_id is not None:
                await uow.artists.link_artwork(artist_id, artwork.id)
            return artwork.id, created

    async def _mark_failed(self, index_id: UUID, message: str) -> None:
        async with await self.uow_factory() as uow:
            record = await uow.artwork_index.get_by_id(index_id)
            if record is None or record.import_status not in (
                ImportStatus.PENDING,
                ImportStatus.PROCESSING,
            ):
                return
            record.mark_failed(message)
            uow.session.add(record)

    async def process_queue(
        self,
        limit: int | None = None,
        since: datetime | None = None,
        concurrency: int | None = None,
    ) -> QueueResult:
        """Promote pending staged records with bounded concurrency.

        One bad record never aborts the pass; its failure is recorded on the row
        and in the returned result.

        Args:
            limit: Maximum records in this pass (default: batch_size)
            since: Only records observed at or after this time
            concurrency: Worker bound (default: engine concurrency)

        Returns:
            QueueResult with per-record outcomes

        Raises:
            OperationalError, InterfaceError: Storage unreachable
        """
        async with await self.uow_factory() as uow:
            pending = await uow.artwork_index.get_pending(limit or self.batch_size, since)
            index_ids = [record.id for record in pending]

        queue_result = QueueResult()
        if not index_ids:
            return queue_result

        semaphore = asyncio.Semaphore(max(1, concurrency or self.concurrency))

        async def _promote(index_id: UUID) -> PromotionResult:
            async with semaphore:
                return await self.process_indexed_data(index_id)

        logger.info("promotion.queue_started", pending=len(index_ids))
        outcomes = await asyncio.gather(*[_promote(i) for i in index_ids], return_exceptions=True)

        for index_id, outcome in zip(index_ids, outcomes):
            if isinstance(outcome, STORAGE_ERRORS):
                raise outcome
            if isinstance(outcome, BaseException):
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                outcome = PromotionResult(
                    index_id=index_id, errors=[f"{type(outcome).__name__}: {outcome}"]
                )
            queue_result.results.append(outcome)
            queue_result.processed += 1
            if outcome.success:
                queue_result.succeeded += 1
                queue_result.artworks_created += int(outcome.artwork_created)
            else:
                queue_result.failed += 1

        logger.info(
            "promotion.queue_completed",
            processed=queue_result.processed,
            succeeded=queue_result.succeeded,
            failed=queue_result.failed,
        )
        return queue_result

    async def import_record(self, payload: dict[str, Any]) -> PromotionResult:
        """Manual single import: normalize, stage, then promote synchronously.

        Raises:
            MissingTokenIdentityError: If contractAddress or tokenId is missing
            PermanentError: If the payload is not IndexerData-shaped
        """
        record, observation_type = manual_record(payload)
        try:
            data = normalize(record)
        except ValidationError as e:
            raise PermanentError(f"Invalid record: {e.error_count()} validation error(s)") from e

        async with await self.uow_factory() as uow:
            staged, _ = await stage_indexer_data(
                uow, data, DataSource.MANUAL, observation_type, record.wallet_address
            )
            index_id = staged.id

        return await self.process_indexed_data(index_id)

    async def import_batch(self, payloads: list[dict[str, Any]]) -> dict[str, Any]:
        """Stage many manual records; promotion happens through the queue.

        Records without a contract address or token ID are skipped.

        Returns:
            {"stored": int, "skipped": int, "errors": list[str]}
        """
        stored = skipped = 0
        errors: list[str] = []

        async with await self.uow_factory() as uow:
            for position, payload in enumerate(payloads):
                try:
                    record, observation_type = manual_record(payload)
                    if not record.contract_address or not record.token_id:
                        skipped += 1
                        continue
                    data = normalize(record)
                except (ValidationError, ValueError) as e:
                    errors.append(f"record {position}: {e}")
                    continue
                await stage_indexer_data(
                    uow, data, DataSource.MANUAL, observation_type, record.wallet_address
                )
                stored += 1

        logger.info("import.batch_staged", stored=stored, skipped=skipped, errors=len(errors))
        return {"stored": stored, "skipped": skipped, "errors": errors}

    async def reset_failed(self, index_ids: list[UUID] | None = None) -> int:
        """Manual retry: failed records back to pending."""
        async with await self.uow_factory() as uow:
            count = await uow.artwork_index.reset_failed(index_ids)
        logger.info("promotion.failed_reset", count=count)
        return count


async def delete_artworks(uow_factory: UowFactory, artwork_ids: list[UUID]) -> dict[str, int]:
    """Delete artworks and decouple the staged records that pointed at them.

    Both happen in one transaction, so a staged row never references a
    deleted artwork.

    Returns:
        {"deleted": int, "decoupled": int}
    """
    async with await uow_factory() as uow:
        decoupled = await uow.artwork_index.decouple_artworks(artwork_ids)
        deleted = await uow.artworks.delete_many(artwork_ids)

    logger.info("artworks.deleted", deleted=deleted, decoupled=decoupled)
    return {"deleted": deleted, "decoupled": decoupled}


def promotion_result_dict(result: PromotionResult) -> dict[str, Any]:
    """JSON-friendly view of a PromotionResult."""
    data = asdict(result)
    for key in ("index_id", "artwork_id", "artist_id", "collection_id"):
        if data[key] is not None:
            data[key] = str(data[key])
    return data
