"""Background promotion worker tests.

Tests focus on:
- Startup recovery of records orphaned in processing
- Batch promotion of pending records
- Worker loop draining the queue and stopping on cancellation
"""

import asyncio
from datetime import timedelta

import pytest

from artindex.core.timezone import utc_now
from artindex.models.enums import DataSource, ImportStatus, ObservationType
from artindex.services.indexing.promotion import UnifiedIndexer, stage_indexer_data
from artindex.services.indexing.schemas import IndexerData
from artindex.workers.promotion_worker import (
    process_batch,
    recover_orphaned_records,
    run_promotion_worker,
)

CONTRACT = "0xc100000000000000000000000000000000000001"


async def stage_pending(uow_factory, token_id: str):
    data = IndexerData(contract_address=CONTRACT, token_id=token_id, blockchain="ethereum")
    async with await uow_factory() as uow:
        record, _ = await stage_indexer_data(
            uow, data, DataSource.MANUAL, ObservationType.OWNED, None
        )
    return record


async def stage_processing(uow_factory, token_id: str, started_ago: timedelta):
    record = await stage_pending(uow_factory, token_id)
    async with await uow_factory() as uow:
        stored = await uow.artwork_index.get_by_id(record.id)
        stored.mark_processing()
        stored.last_attempt_at = utc_now() - started_ago
        uow.session.add(stored)
    return record


@pytest.mark.asyncio
async def test_recover_orphaned_records(uow_factory):
    orphan = await stage_processing(uow_factory, "1", started_ago=timedelta(hours=1))
    in_flight = await stage_processing(uow_factory, "2", started_ago=timedelta(seconds=5))

    recovered = await recover_orphaned_records(uow_factory)

    assert recovered == 1
    async with await uow_factory() as uow:
        assert (await uow.artwork_index.get_by_id(orphan.id)).import_status == ImportStatus.PENDING
        still_running = await uow.artwork_index.get_by_id(in_flight.id)
        assert still_running.import_status == ImportStatus.PROCESSING


@pytest.mark.asyncio
async def test_process_batch_promotes_pending(settings, uow_factory):
    await stage_pending(uow_factory, "1")
    await stage_pending(uow_factory, "2")
    indexer = UnifiedIndexer(uow_factory, concurrency=1, batch_size=settings.queue_batch_size)

    processed = await process_batch(indexer, settings)

    assert processed == 2
    async with await uow_factory() as uow:
        assert (await uow.artwork_index.count_by_status())["imported"] == 2
        assert await uow.artworks.count() == 2


@pytest.mark.asyncio
async def test_process_batch_with_empty_queue(settings, uow_factory):
    indexer = UnifiedIndexer(uow_factory, concurrency=1)

    assert await process_batch(indexer, settings) == 0


@pytest.mark.asyncio
async def test_worker_drains_queue_until_cancelled(settings, uow_factory):
    await stage_pending(uow_factory, "1")
    task = asyncio.create_task(run_promotion_worker(uow_factory, settings))

    imported = 0
    for _ in range(100):
        await asyncio.sleep(0.05)
        async with await uow_factory() as uow:
            imported = (await uow.artwork_index.count_by_status())["imported"]
        if imported:
            break

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert imported == 1
