"""Promotion worker: drains the staged-record queue in the background.

Polls for pending ArtworkIndex rows every POLL_INTERVAL_SECONDS and promotes
them through UnifiedIndexer.process_queue. Staging from the admin batch import
lands here, as does anything a crashed run left behind.
"""

import asyncio
from datetime import timedelta

import structlog

from artindex.core.config import Settings
from artindex.core.timezone import utc_now
from artindex.services.indexing.promotion import UnifiedIndexer, UowFactory

logger = structlog.get_logger(__name__)

# Rows left in processing longer than this are assumed orphaned by a crash
STALE_PROCESSING_AFTER = timedelta(minutes=10)


async def recover_orphaned_records(uow_factory: UowFactory) -> int:
    """Reset records stuck in 'processing' on startup.

    A crash between mark_processing and mark_imported leaves the row in
    processing. Promotion is idempotent, so the row simply goes back to pending.

    Returns:
        Number of records recovered
    """
    async with await uow_factory() as uow:
        recovered = await uow.artwork_index.recover_stale_processing(
            older_than=utc_now() - STALE_PROCESSING_AFTER
        )
    if recovered:
        logger.warning("worker.recovery", worker_type="promotion", recovered=recovered)
    else:
        logger.info("worker.recovery", worker_type="promotion", recovered=0)
    return recovered


async def process_batch(indexer: UnifiedIndexer, settings: Settings) -> int:
    """Promote one batch of pending records.

    Returns:
        Number of records processed
    """
    result = await indexer.process_queue(
        limit=settings.queue_batch_size,
        concurrency=settings.promotion_concurrency,
    )
    if result.processed:
        logger.info(
            "worker.batch_completed",
            worker_type="promotion",
            processed=result.processed,
            succeeded=result.succeeded,
            failed=result.failed,
        )
    return result.processed


async def run_promotion_worker(uow_factory: UowFactory, settings: Settings) -> None:
    """Main worker loop for staged record promotion.

    Polls at POLL_INTERVAL_SECONDS. A full batch is followed immediately by the
    next one; an empty or partial batch waits for the next poll.

    Args:
        uow_factory: Coroutine factory returning a fresh UnitOfWork
        settings: Application settings (poll interval, batch size, concurrency)
    """
    await recover_orphaned_records(uow_factory)

    indexer = UnifiedIndexer(
        uow_factory,
        concurrency=settings.promotion_concurrency,
        batch_size=settings.queue_batch_size,
    )

    logger.info(
        "worker.started",
        worker_type="promotion",
        poll_interval=settings.poll_interval_seconds,
        batch_size=settings.queue_batch_size,
    )

    try:
        while True:
            try:
                processed = await process_batch(indexer, settings)
                if processed < settings.queue_batch_size:
                    await asyncio.sleep(settings.poll_interval_seconds)

            except asyncio.CancelledError:
                raise

            except Exception as e:
                # Unexpected error in polling loop - log and continue with backoff
                logger.error(
                    "worker.error",
                    worker_type="promotion",
                    error_type=type(e).__name__,
                    error_message=str(e),
                    exc_info=True,
                )
                await asyncio.sleep(5)

    except asyncio.CancelledError:
        logger.info("worker.stopped", worker_type="promotion")
        raise
