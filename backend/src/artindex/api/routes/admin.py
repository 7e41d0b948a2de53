"""Administrative indexing API endpoints.

This module implements the operator surface of the pipeline:
- POST /api/admin/index-wallets - Index one or all configured wallets and promote
- POST /api/admin/import - Manual import (one record promoted now, a list queued)
- POST /api/admin/process-queue - Promote pending staged records
- POST /api/admin/index/reset-failed - Move failed staged records back to pending
- GET /api/admin/index - Staged records, collapsed to one entry per token
- GET /api/admin/index/stats - Queue and catalog counts
- GET /api/admin/indexer/last-run - Report of the most recent indexing run
- DELETE /api/admin/artworks - Delete artworks and decouple their staged records
"""

from datetime import datetime
from typing import Any
from uuid import UUID

import structlog
from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from artindex.api.dependencies import get_indexer, get_orchestrator, get_uow, get_uow_factory
from artindex.models.enums import ImportStatus, ObservationType
from artindex.repositories.artwork_index import CollapsedIndexEntry
from artindex.services.exceptions import PermanentError
from artindex.services.indexing.orchestrator import LAST_RUN_STATE_KEY, IndexingOrchestrator
from artindex.services.indexing.promotion import (
    UnifiedIndexer,
    UowFactory,
    delete_artworks,
    promotion_result_dict,
)
from artindex.uow import UnitOfWork

logger = structlog.get_logger()
router = APIRouter(prefix="/api/admin", tags=["admin"])


# Request/Response Models


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class IndexWalletsRequest(_CamelModel):
    """Request model for an indexing run. Empty body runs every configured wallet."""

    wallet_address: str | None = Field(default=None, description="Single wallet to index")
    blockchain: str | None = Field(
        default=None, description="ethereum, base, polygon, shape or tezos"
    )
    observation_type: ObservationType | None = Field(default=None, description="owned or created")
    promote: bool = Field(default=True, description="Promote staged records after indexing")


class ProcessQueueRequest(_CamelModel):
    limit: int | None = Field(default=None, ge=1, le=1000)
    concurrency: int | None = Field(default=None, ge=1, le=32)


class ResetFailedRequest(_CamelModel):
    index_ids: list[UUID] | None = Field(
        default=None, description="Records to reset (omit to reset every failed record)"
    )


class DeleteArtworksRequest(_CamelModel):
    artwork_ids: list[UUID] = Field(..., min_length=1)


class IndexEntryDTO(_CamelModel):
    """One token in the staged listing, shown through its preferred row."""

    id: UUID
    uid: str
    contract_address: str
    token_id: str
    observation_type: str
    observation_types: list[str]
    row_count: int
    data_source: str
    blockchain: str
    wallet_address: str | None
    import_status: ImportStatus
    artwork_id: UUID | None
    title: str | None
    image_url: str | None
    thumbnail_url: str | None
    error_message: str | None
    attempt_count: int
    last_seen_at: datetime

    @classmethod
    def from_entry(cls, entry: CollapsedIndexEntry) -> "IndexEntryDTO":
        record = entry.record
        payload = record.normalized_data or {}
        return cls(
            id=record.id,
            uid=record.uid,
            contract_address=record.contract_address,
            token_id=record.token_id,
            observation_type=record.observation_type,
            observation_types=entry.observation_types,
            row_count=entry.row_count,
            data_source=record.data_source,
            blockchain=record.blockchain,
            wallet_address=record.wallet_address,
            import_status=record.import_status,
            artwork_id=record.artwork_id,
            title=payload.get("title"),
            image_url=payload.get("image_url"),
            thumbnail_url=payload.get("thumbnail_url"),
            error_message=record.error_message,
            attempt_count=record.attempt_count,
            last_seen_at=record.last_seen_at,
        )


class IndexListResponse(_CamelModel):
    items: list[IndexEntryDTO]
    total: int
    limit: int
    offset: int


# Endpoints


@router.post("/index-wallets")
async def index_wallets(
    request: IndexWalletsRequest | None = None,
    orchestrator: IndexingOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    """Run the indexing pipeline and return the run report.

    The report is always returned; provider failures show up as per-wallet
    errors rather than an error status.
    """
    request = request or IndexWalletsRequest()
    report = await orchestrator.index_and_import(
        wallet_address=request.wallet_address,
        blockchain=request.blockchain,
        observation_type=request.observation_type,
        promote=request.promote,
    )
    return report.to_dict()


@router.post("/import")
async def import_records(
    payload: dict[str, Any] | list[dict[str, Any]] = Body(...),
    indexer: UnifiedIndexer = Depends(get_indexer),
) -> dict[str, Any]:
    """Manual import of IndexerData-like records.

    A single object is normalized, staged and promoted synchronously. A list is
    staged only and promoted later by the queue.

    Raises:
        HTTPException: 400 if a single record is invalid or lacks contractAddress/tokenId
    """
    if isinstance(payload, list):
        result = await indexer.import_batch(payload)
        return {"mode": "queued", **result}

    try:
        promotion = await indexer.import_record(payload)
    except (PermanentError, ValueError) as e:
        logger.warning("import.rejected", error=str(e), error_type=type(e).__name__)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return {"mode": "promoted", **promotion_result_dict(promotion)}


@router.post("/process-queue")
async def process_queue(
    request: ProcessQueueRequest | None = None,
    indexer: UnifiedIndexer = Depends(get_indexer),
) -> dict[str, Any]:
    request = request or ProcessQueueRequest()
    result = await indexer.process_queue(limit=request.limit, concurrency=request.concurrency)
    return result.summary()


@router.post("/index/reset-failed")
async def reset_failed(
    request: ResetFailedRequest | None = None,
    indexer: UnifiedIndexer = Depends(get_indexer),
) -> dict[str, int]:
    request = request or ResetFailedRequest()
    count = await indexer.reset_failed(request.index_ids)
    return {"reset": count}


@router.get("/index", response_model=IndexListResponse, response_model_by_alias=True)
async def list_index(
    status_filter: ImportStatus | None = Query(default=None, alias="status"),
    search: str | None = Query(default=None, max_length=200),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    uow: UnitOfWork = Depends(get_uow),
) -> IndexListResponse:
    """List staged tokens, one entry per (contract, token).

    Rows already linked to an Artwork take precedence over stale staged rows.
    """
    entries, total = await uow.artwork_index.list_collapsed(
        status=status_filter, search=search, limit=limit, offset=offset
    )
    return IndexListResponse(
        items=[IndexEntryDTO.from_entry(e) for e in entries],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/index/stats")
async def index_stats(uow: UnitOfWork = Depends(get_uow)) -> dict[str, Any]:
    by_status = await uow.artwork_index.count_by_status()
    return {
        "by_status": by_status,
        "staged_rows": sum(by_status.values()),
        "distinct_tokens": await uow.artwork_index.count_distinct_tokens(),
        "artworks": await uow.artworks.count(),
        "artists": await uow.artists.count(),
        "collections": await uow.collections.count(),
    }


@router.get("/indexer/last-run")
async def last_run(uow: UnitOfWork = Depends(get_uow)) -> dict[str, Any]:
    """Report of the most recent index_and_import run.

    Raises:
        HTTPException: 404 if no run has completed yet
    """
    report = await uow.system_state.get_state(LAST_RUN_STATE_KEY)
    if report is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="No indexing run recorded"
        )
    return report


@router.delete("/artworks")
async def delete_artworks_endpoint(
    request: DeleteArtworksRequest,
    uow_factory: UowFactory = Depends(get_uow_factory),
) -> dict[str, int]:
    """Delete artworks; their staged records return to pending with no back-reference."""
    return await delete_artworks(uow_factory, request.artwork_ids)
