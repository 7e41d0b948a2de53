"""CLI command for promoting pending staged records.

Usage:
    python -m artindex.cli.process_queue [--limit N] [--reset-failed]

Examples:
    # Promote up to QUEUE_BATCH_SIZE pending records
    python -m artindex.cli.process_queue

    # Retry everything that failed, then promote up to 500 records
    python -m artindex.cli.process_queue --reset-failed --limit 500
"""

import asyncio
import sys
from argparse import ArgumentParser, Namespace

import structlog
from sqlalchemy.exc import SQLAlchemyError

from artindex.core import timezone  # noqa: F401
from artindex.core.config import Settings, configure_logging
from artindex.core.database import setup_db_session
from artindex.services.indexing.promotion import UnifiedIndexer
from artindex.uow import create_uow_factory

logger = structlog.get_logger()


def parse_args(argv: list[str] | None = None) -> Namespace:
    """Parse command-line arguments."""
    parser = ArgumentParser(description="Promote pending staged records into the catalog")
    parser.add_argument(
        "--limit", type=int, help="Maximum records to promote (default: QUEUE_BATCH_SIZE)"
    )
    parser.add_argument(
        "--reset-failed",
        action="store_true",
        help="Move failed records back to pending before promoting",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose logging (DEBUG level)"
    )
    return parser.parse_args(argv)


async def async_main(argv: list[str] | None = None) -> int:
    """Main CLI entry point (async).

    Returns:
        Exit code: 0 (success), 1 (error), 2 (partial success), 130 (interrupted)
    """
    args = parse_args(argv)

    settings = Settings()  # type: ignore[call-arg]
    if args.verbose:
        settings.log_level = "DEBUG"
    configure_logging(settings)

    session_factory = setup_db_session(settings.database_url, settings.db_pool_size)
    indexer = UnifiedIndexer(
        create_uow_factory(session_factory),
        concurrency=settings.promotion_concurrency,
        batch_size=settings.queue_batch_size,
    )

    try:
        reset = await indexer.reset_failed() if args.reset_failed else 0
        result = await indexer.process_queue(limit=args.limit)

    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.info("cli.interrupted")
        print("\nPromotion interrupted by user", file=sys.stderr)
        return 130

    except SQLAlchemyError as e:
        logger.error("cli.storage_error", error=str(e), error_type=type(e).__name__)
        print(f"\nDatabase error: {e}", file=sys.stderr)
        return 1

    print("\n" + "=" * 60)
    print("Promotion Summary")
    print("=" * 60)
    if args.reset_failed:
        print(f"Failed records reset: {reset}")
    print(f"Processed: {result.processed}")
    print(f"Succeeded: {result.succeeded} ({result.artworks_created} new artworks)")
    print(f"Failed: {result.failed}")
    for error in result.errors[:5]:
        print(f"  - {error}")
    if len(result.errors) > 5:
        print(f"  ... and {len(result.errors) - 5} more errors")
    print("=" * 60 + "\n")

    if result.failed == 0:
        return 0
    if result.succeeded > 0:
        return 2
    return 1


def main() -> None:
    """Synchronous entry point for CLI."""
    try:
        sys.exit(asyncio.run(async_main()))
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
