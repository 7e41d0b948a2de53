"""Batch orchestrator: wallets → provider pages → staging → promotion queue.

Wallets run sequentially with a fixed pause between them. Within one wallet
the owned pages are walked first, then the created pages, each in provider
order. Provider pacing is the adapters' job; a provider failure that survives
the adapter's retries aborts only the current pass and lands in the report.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import structlog
from pydantic import ValidationError

from artindex.core.config import Settings, WalletConfig
from artindex.core.timezone import utc_now
from artindex.models.enums import Blockchain, ObservationType
from artindex.services.exceptions import ProviderError
from artindex.services.indexing.identity import detect_blockchain, normalize_address
from artindex.services.indexing.normalizer import normalize
from artindex.services.indexing.promotion import UnifiedIndexer, UowFactory, stage_indexer_data
from artindex.services.indexing.schemas import IndexerData
from artindex.services.providers.base import ProviderAdapter, TokenPage

logger = structlog.get_logger()

LAST_RUN_STATE_KEY = "indexer_last_run"


@dataclass
class WalletReport:
    """Counts for one wallet in a run."""

    wallet_address: str
    blockchain: str
    alias: str | None = None
    discovered: int = 0
    stored: int = 0
    new: int = 0
    filtered: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "wallet_address": self.wallet_address,
            "blockchain": self.blockchain,
            "alias": self.alias,
            "discovered": self.discovered,
            "stored": self.stored,
            "new": self.new,
            "filtered": self.filtered,
            "errors": list(self.errors),
        }


@dataclass
class RunReport:
    """Rolled-up outcome of index_and_import. Always returned, never raised."""

    started_at: datetime
    finished_at: datetime | None = None
    wallets: list[WalletReport] = field(default_factory=list)
    promotion: dict[str, Any] | None = None

    @property
    def total_wallets(self) -> int:
        return len(self.wallets)

    @property
    def total_discovered(self) -> int:
        return sum(w.discovered for w in self.wallets)

    @property
    def total_stored(self) -> int:
        return sum(w.stored for w in self.wallets)

    @property
    def total_new(self) -> int:
        return sum(w.new for w in self.wallets)

    @property
    def total_errors(self) -> int:
        promotion_failed = (self.promotion or {}).get("failed", 0)
        return sum(len(w.errors) for w in self.wallets) + promotion_failed

    @property
    def status(self) -> str:
        """success, partial (errors and successes) or failed (errors only)."""
        if self.total_errors == 0:
            return "success"
        promoted = (self.promotion or {}).get("succeeded", 0)
        if self.total_stored or promoted:
            return "partial"
        return "failed"

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "total_wallets": self.total_wallets,
            "total_discovered": self.total_discovered,
            "total_stored": self.total_stored,
            "total_new": self.total_new,
            "total_errors": self.total_errors,
            "wallets": [w.to_dict() for w in self.wallets],
            "promotion": self.promotion,
        }


class IndexingOrchestrator:
    """Drives provider adapters across the configured wallets.

    Raises from index_and_import only on cancellation or when the storage
    boundary is unreachable; every other failure is reported.
    """

    def __init__(
        self,
        settings: Settings,
        uow_factory: UowFactory,
        adapters: dict[Blockchain, ProviderAdapter],
        indexer: UnifiedIndexer | None = None,
    ):
        """Initialize orchestrator.

        Args:
            settings: Pacing, concurrency and configured wallets
            uow_factory: Coroutine factory returning a fresh UnitOfWork
            adapters: Adapter per blockchain (see build_adapters)
            indexer: Promotion engine (built from settings when omitted)
        """
        self.settings = settings
        self.uow_factory = uow_factory
        self.adapters = adapters
        self.indexer = indexer or UnifiedIndexer(
            uow_factory,
            concurrency=settings.promotion_concurrency,
            batch_size=settings.queue_batch_size,
        )

    async def index_and_import(
        self,
        wallet_address: str | None = None,
        blockchain: str | None = None,
        observation_type: ObservationType | None = None,
        promote: bool = True,
    ) -> RunReport:
        """Index one wallet (or every configured wallet) and promote what was staged.

        Args:
            wallet_address: Single wallet to index; None runs the configured list
            blockchain: Chain of wallet_address (detected from the address when
                omitted), or a filter on the configured list
            observation_type: Restrict to owned or created; None runs both
            promote: Run the promotion queue after staging

        Returns:
            RunReport (also persisted under system_state "indexer_last_run")
        """
        report = RunReport(started_at=utc_now())
        wallets = self._select_wallets(wallet_address, blockchain)

        logger.info(
            "orchestrator.run_started",
            wallets=len(wallets),
            observation_type=observation_type.value if observation_type else "all",
            promote=promote,
        )

        for position, wallet in enumerate(wallets):
            if position > 0 and self.settings.wallet_delay_seconds > 0:
                await asyncio.sleep(self.settings.wallet_delay_seconds)
            wallet_report = await self._index_wallet(wallet, observation_type)
            report.wallets.append(wallet_report)

        if promote:
            report.promotion = await self._promote(since=report.started_at)

        report.finished_at = utc_now()
        async with await self.uow_factory() as uow:
            await uow.system_state.set_state(LAST_RUN_STATE_KEY, report.to_dict())

        logger.info(
            "orchestrator.run_completed",
            status=report.status,
            total_wallets=report.total_wallets,
            total_discovered=report.total_discovered,
            total_stored=report.total_stored,
            total_new=report.total_new,
            total_errors=report.total_errors,
        )
        return report

    def _select_wallets(
        self, wallet_address: str | None, blockchain: str | None
    ) -> list[WalletConfig]:
        if wallet_address:
            chain = Blockchain.parse(blockchain)
            if chain is Blockchain.UNKNOWN:
                chain = detect_blockchain(wallet_address.strip())
            return [WalletConfig(address=wallet_address.strip(), blockchain=chain.value)]

        wallets = list(self.settings.indexed_wallets)
        if blockchain:
            chain = Blockchain.parse(blockchain)
            wallets = [w for w in wallets if Blockchain.parse(w.blockchain) is chain]
        return wallets

    def _plan_passes(
        self, adapter: ProviderAdapter, requested: list[ObservationType]
    ) -> list[tuple[ObservationType, bool]]:
        """Return (observation type to fetch, keep self-created records only) pairs.

        An adapter without a created listing derives it from the owned listing.
        When the owned pass already runs, its self-created records are upgraded
        to "created" during staging, so no second pass is needed.
        """
        passes = []
        for observation_type in requested:
            if adapter.supports(observation_type):
                passes.append((observation_type, False))
            elif (
                observation_type is ObservationType.CREATED
                and ObservationType.OWNED not in requested
            ):
                passes.append((ObservationType.OWNED, True))
        return passes

    async def _index_wallet(
        self, wallet: WalletConfig, observation_type: ObservationType | None
    ) -> WalletReport:
        chain = Blockchain.parse(wallet.blockchain)
        report = WalletReport(
            wallet_address=wallet.address, blockchain=chain.value, alias=wallet.alias
        )
        log = logger.bind(wallet=wallet.address, blockchain=chain.value)

        adapter = self.adapters.get(chain)
        if adapter is None:
            report.errors.append(f"No provider configured for blockchain {chain.value}")
            log.warning("orchestrator.no_provider")
            return report

        try:
            address = normalize_address(wallet.address)
        except ValueError as e:
            report.errors.append(str(e))
            return report
        report.wallet_address = address

        requested = (
            [observation_type]
            if observation_type
            else [ObservationType.OWNED, ObservationType.CREATED]
        )
        passes = self._plan_passes(adapter, requested)

        for position, (fetch_type, created_only) in enumerate(passes):
            if position > 0 and self.settings.observation_delay_seconds > 0:
                await asyncio.sleep(self.settings.observation_delay_seconds)
            try:
                async for page in adapter.iter_wallet_tokens(address, fetch_type):
                    await self._stage_page(page, address, created_only, report)
            except ProviderError as e:
                # Retries exhausted (or permanent error): abort this pass only
                report.errors.append(f"{fetch_type.value}: {e}")
                log.error(
                    "orchestrator.wallet_pass_failed",
                    observation_type=fetch_type.value,
                    error=str(e),
                    error_type=type(e).__name__,
                )

        log.info(
            "orchestrator.wallet_completed",
            discovered=report.discovered,
            stored=report.stored,
            new=report.new,
            filtered=report.filtered,
            errors=len(report.errors),
        )
        return report

    async def _stage_page(
        self, page: TokenPage, address: str, created_only: bool, report: WalletReport
    ) -> None:
        report.filtered += page.filtered_count
        async with await self.uow_factory() as uow:
            for record in page.records:
                try:
                    data = normalize(record)
                except (ValidationError, ValueError) as e:
                    report.discovered += 1
                    report.errors.append(f"{record.contract_address}:{record.token_id}: {e}")
                    continue

                self_created = _is_created_by(data, address)
                if created_only and not self_created:
                    report.filtered += 1
                    continue
                report.discovered += 1

                if not data.contract_address or not data.token_id:
                    report.errors.append("record without contract address or token ID skipped")
                    continue

                observation_type = record.observation_type
                if self_created:
                    observation_type = ObservationType.CREATED

                _, created = await stage_indexer_data(
                    uow, data, record.source, observation_type, address
                )
                report.stored += 1
                report.new += int(created)

    async def _promote(self, since: datetime) -> dict[str, Any]:
        """Drain the queue of records staged by this run."""
        totals = {"processed": 0, "succeeded": 0, "failed": 0, "artworks_created": 0, "errors": []}
        while True:
            result = await self.indexer.process_queue(since=since)
            totals["processed"] += result.processed
            totals["succeeded"] += result.succeeded
            totals["failed"] += result.failed
            totals["artworks_created"] += result.artworks_created
            totals["errors"].extend(result.errors)
            if result.processed < self.indexer.batch_size:
                return totals


def _is_created_by(data: IndexerData, address: str) -> bool:
    if not data.creator or not data.creator.address:
        return False
    return normalize_address(data.creator.address).lower() == address.lower()
