"""CLI command for indexing wallets and promoting what was found.

Usage:
    python -m artindex.cli.index_wallets [OPTIONS]

Examples:
    # Index every wallet in INDEXED_WALLETS
    python -m artindex.cli.index_wallets

    # Index one Tezos wallet, created tokens only
    python -m artindex.cli.index_wallets --wallet tz1... --blockchain tezos --type created

    # Stage only (promotion left to the worker)
    python -m artindex.cli.index_wallets --no-promote

    # Verbose logging
    python -m artindex.cli.index_wallets -v
"""

import asyncio
import sys
from argparse import ArgumentParser, Namespace

import structlog
from sqlalchemy.exc import SQLAlchemyError

from artindex.core import timezone  # noqa: F401
from artindex.core.config import Settings, configure_logging
from artindex.core.database import setup_db_session
from artindex.models.enums import Blockchain, ObservationType
from artindex.services.indexing.orchestrator import IndexingOrchestrator, RunReport
from artindex.services.providers.factory import build_adapters, create_http_client
from artindex.uow import create_uow_factory

logger = structlog.get_logger()


def parse_args(argv: list[str] | None = None) -> Namespace:
    """Parse command-line arguments."""
    parser = ArgumentParser(
        description="Index wallets across providers and promote tokens into the catalog",
        epilog="Without --wallet, every wallet configured in INDEXED_WALLETS is indexed",
    )

    parser.add_argument("--wallet", help="Single wallet address to index")

    parser.add_argument(
        "--blockchain",
        choices=[chain.value for chain in Blockchain if chain is not Blockchain.UNKNOWN],
        help="Chain of --wallet (detected from the address when omitted)",
    )

    parser.add_argument(
        "--type",
        dest="observation_type",
        choices=[t.value for t in ObservationType],
        help="Only index owned or created tokens (default: both)",
    )

    parser.add_argument(
        "--no-promote",
        action="store_true",
        help="Stage tokens without promoting them",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )

    return parser.parse_args(argv)


def print_summary(report: RunReport) -> None:
    print("\n" + "=" * 60)
    print("Indexing Summary")
    print("=" * 60)
    for wallet in report.wallets:
        label = wallet.wallet_address
        if wallet.alias:
            label = f"{wallet.alias} ({wallet.wallet_address})"
        print(
            f"{label} [{wallet.blockchain}]: discovered {wallet.discovered}, "
            f"stored {wallet.stored}, new {wallet.new}, errors {len(wallet.errors)}"
        )
        for error in wallet.errors[:3]:
            print(f"  - {error}")
    print("-" * 60)
    print(f"Wallets: {report.total_wallets}")
    print(f"Tokens discovered: {report.total_discovered}")
    print(f"Tokens stored: {report.total_stored} ({report.total_new} new)")
    if report.promotion is not None:
        print(
            f"Promoted: {report.promotion['succeeded']} succeeded, "
            f"{report.promotion['failed']} failed, "
            f"{report.promotion['artworks_created']} new artworks"
        )
    print(f"Errors: {report.total_errors}")
    print("=" * 60 + "\n")


def exit_code_for(report: RunReport) -> int:
    """0 on success (including nothing new), 2 on partial success, 1 on failure."""
    return {"success": 0, "partial": 2}.get(report.status, 1)


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

    if not args.wallet and not settings.indexed_wallets:
        print("Error: no --wallet given and INDEXED_WALLETS is empty", file=sys.stderr)
        return 1

    logger.info(
        "cli.started",
        wallet=args.wallet,
        blockchain=args.blockchain,
        observation_type=args.observation_type,
        promote=not args.no_promote,
    )

    session_factory = setup_db_session(settings.database_url, settings.db_pool_size)
    uow_factory = create_uow_factory(session_factory)

    observation_type = ObservationType(args.observation_type) if args.observation_type else None

    async with create_http_client(settings) as client:
        orchestrator = IndexingOrchestrator(settings, uow_factory, build_adapters(settings, client))
        try:
            report = await orchestrator.index_and_import(
                wallet_address=args.wallet,
                blockchain=args.blockchain,
                observation_type=observation_type,
                promote=not args.no_promote,
            )

        except (KeyboardInterrupt, asyncio.CancelledError):
            logger.info("cli.interrupted")
            print("\nIndexing interrupted by user", file=sys.stderr)
            return 130

        except SQLAlchemyError as e:
            logger.error("cli.storage_error", error=str(e), error_type=type(e).__name__)
            print(f"\nDatabase error: {e}", file=sys.stderr)
            return 1

    print_summary(report)

    code = exit_code_for(report)
    if code == 0:
        logger.info("cli.success", new=report.total_new)
    elif code == 2:
        logger.warning("cli.partial_success", errors=report.total_errors)
    else:
        logger.error("cli.failure", errors=report.total_errors)
    return code


def main() -> None:
    """Synchronous entry point for CLI."""
    try:
        sys.exit(asyncio.run(async_main()))
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
