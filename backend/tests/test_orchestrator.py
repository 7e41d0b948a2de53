"""Batch orchestrator tests with in-memory provider adapters.

Tests focus on:
- Run report counts (discovered, stored, new) and roll-up status
- Provider failures reported per wallet without aborting the run
- Owned pass before created pass, and the owned-only fallback for "created"
- Self-created tokens from an owned listing staged as "created"
- Persisted last-run report
"""

import httpx
import pytest

from artindex.core.config import WalletConfig
from artindex.models.enums import Blockchain, DataSource, ImportStatus, ObservationType
from artindex.services.exceptions import ProviderNetworkError
from artindex.services.indexing.orchestrator import LAST_RUN_STATE_KEY, IndexingOrchestrator
from artindex.services.providers.base import ProviderAdapter, ProviderRecord, TokenPage
from artindex.services.providers.opensea import OpenSeaAdapter

ALICE = "0x00000000000000000000000000000000000a11ce"
BOB = "0x00000000000000000000000000000000000b0b00"
OTHER_ARTIST = "0x00000000000000000000000000000000000000aa"
CONTRACT = "0xc0ffee0000000000000000000000000000000001"
TEZOS_WALLET = "tz1VSUr8wwNhLAzempoch5d6hLRiTh8Cjcjb"


def opensea_nft(token_id: str, creator: str | None = OTHER_ARTIST) -> dict:
    nft = {
        "identifier": token_id,
        "contract": CONTRACT,
        "collection": "dawn-series",
        "token_standard": "erc721",
        "name": f"Dawn #{token_id}",
        "image_url": f"https://img.example/{token_id}.png",
    }
    if creator:
        nft["creator_profile"] = {"address": creator}
    return nft


class FakeAdapter(ProviderAdapter):
    """Serves canned pages per (wallet, observation type) and records every call."""

    def __init__(
        self,
        source: DataSource,
        blockchain: Blockchain,
        pages: dict[tuple[str, ObservationType], list[list[dict]]],
        observation_types: tuple[ObservationType, ...] = (ObservationType.OWNED,),
        failures: dict[str, Exception] | None = None,
    ):
        self.source = source
        self.blockchain = blockchain
        self.observation_types = observation_types
        super().__init__(client=None, min_interval=0)  # type: ignore[arg-type]
        self.pages = pages
        self.failures = failures or {}
        self.calls: list[tuple[str, ObservationType, str | None]] = []

    async def fetch_wallet_tokens(self, address, observation_type, page_size=None, cursor=None):
        self.calls.append((address, observation_type, cursor))
        if address in self.failures:
            raise self.failures[address]

        pages = self.pages.get((address, observation_type), [[]])
        index = int(cursor or 0)
        records = [
            ProviderRecord(
                source=self.source,
                blockchain=self.blockchain,
                observation_type=observation_type,
                wallet_address=address,
                contract_address=payload.get("contract")
                or (payload.get("fa") or {}).get("contract"),
                token_id=str(payload.get("identifier") or payload.get("token_id")),
                payload=payload,
            )
            for payload in pages[index]
        ]
        next_cursor = str(index + 1) if index + 1 < len(pages) else None
        return TokenPage(records=records, next_cursor=next_cursor)


def opensea_adapter(pages, failures=None) -> FakeAdapter:
    return FakeAdapter(DataSource.OPENSEA, Blockchain.ETHEREUM, pages, failures=failures)


@pytest.mark.asyncio
class TestIndexAndImport:
    async def test_report_counts_and_promotion(self, settings, uow_factory):
        adapter = opensea_adapter(
            {
                (ALICE, ObservationType.OWNED): [
                    [opensea_nft("1"), opensea_nft("2", creator=ALICE)],
                    [opensea_nft("3", creator=None)],
                ]
            }
        )
        orchestrator = IndexingOrchestrator(settings, uow_factory, {Blockchain.ETHEREUM: adapter})

        report = await orchestrator.index_and_import()

        assert report.status == "success"
        assert report.total_wallets == 1
        assert (report.total_discovered, report.total_stored, report.total_new) == (3, 3, 3)
        assert report.promotion["succeeded"] == 3
        assert report.promotion["artworks_created"] == 3
        assert [cursor for _, _, cursor in adapter.calls] == [None, "1"]

        async with await uow_factory() as uow:
            created_rows = await uow.artwork_index.get_by_token(CONTRACT, "2")
            assert [r.observation_type for r in created_rows] == ["created"]
            assert created_rows[0].wallet_address == ALICE
            counts = await uow.artwork_index.count_by_status()
            assert counts[ImportStatus.IMPORTED.value] == 3

    async def test_rerun_stores_without_new_records(self, settings, uow_factory):
        adapter = opensea_adapter({(ALICE, ObservationType.OWNED): [[opensea_nft("1")]]})
        orchestrator = IndexingOrchestrator(settings, uow_factory, {Blockchain.ETHEREUM: adapter})

        await orchestrator.index_and_import()
        report = await orchestrator.index_and_import()

        assert report.status == "success"
        assert (report.total_stored, report.total_new) == (1, 0)
        async with await uow_factory() as uow:
            assert await uow.artworks.count() == 1

    async def test_provider_failure_reported_per_wallet(self, settings, uow_factory):
        settings = settings.model_copy(
            update={
                "indexed_wallets": [
                    WalletConfig(address=BOB, blockchain="ethereum", alias="bob"),
                    WalletConfig(address=ALICE, blockchain="ethereum"),
                ]
            }
        )
        adapter = opensea_adapter(
            {(ALICE, ObservationType.OWNED): [[opensea_nft("1")]]},
            failures={BOB: ProviderNetworkError("opensea: service unavailable (503)")},
        )
        orchestrator = IndexingOrchestrator(settings, uow_factory, {Blockchain.ETHEREUM: adapter})

        report = await orchestrator.index_and_import()

        bob, alice = report.wallets
        assert bob.alias == "bob"
        assert bob.errors == ["owned: opensea: service unavailable (503)"]
        assert alice.errors == []
        assert alice.stored == 1
        assert report.status == "partial"
        assert report.total_errors == 1

    async def test_every_wallet_failing_is_failed_status(self, settings, uow_factory):
        adapter = opensea_adapter({}, failures={ALICE: ProviderNetworkError("down")})
        orchestrator = IndexingOrchestrator(settings, uow_factory, {Blockchain.ETHEREUM: adapter})

        report = await orchestrator.index_and_import()

        assert report.status == "failed"

    async def test_malformed_provider_body_fails_only_that_wallet(self, settings, uow_factory):
        settings = settings.model_copy(
            update={
                "indexed_wallets": [
                    WalletConfig(address=BOB, blockchain="ethereum"),
                    WalletConfig(address=ALICE, blockchain="ethereum"),
                ]
            }
        )

        def handler(request: httpx.Request) -> httpx.Response:
            if BOB in request.url.path:
                return httpx.Response(200, json=[])
            return httpx.Response(200, json={"nfts": [opensea_nft("1")]})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        adapter = OpenSeaAdapter(
            client,
            api_key="test-key",
            base_url="https://opensea.test",
            min_interval=0,
            retry_delays=[0, 0, 0],
        )
        orchestrator = IndexingOrchestrator(settings, uow_factory, {Blockchain.ETHEREUM: adapter})

        report = await orchestrator.index_and_import()

        bob, alice = report.wallets
        assert bob.errors == ["owned: opensea: unexpected response body (list)"]
        assert alice.stored == 1
        assert report.status == "partial"

    async def test_chain_without_provider_is_reported(self, settings, uow_factory):
        orchestrator = IndexingOrchestrator(settings, uow_factory, {})

        report = await orchestrator.index_and_import(wallet_address=TEZOS_WALLET)

        assert report.wallets[0].blockchain == "tezos"
        assert "No provider configured" in report.wallets[0].errors[0]

    async def test_owned_pass_runs_before_created_pass(self, settings, uow_factory):
        token = {
            "token_id": "42",
            "name": "Tide",
            "fa": {"contract": "KT1RJ6PbjHpwc3M5rw5s2Nbmefwbuwbdxton"},
        }
        adapter = FakeAdapter(
            DataSource.OBJKT,
            Blockchain.TEZOS,
            {
                (TEZOS_WALLET, ObservationType.OWNED): [[token]],
                (TEZOS_WALLET, ObservationType.CREATED): [[token]],
            },
            observation_types=(ObservationType.OWNED, ObservationType.CREATED),
        )
        orchestrator = IndexingOrchestrator(settings, uow_factory, {Blockchain.TEZOS: adapter})

        report = await orchestrator.index_and_import(
            wallet_address=TEZOS_WALLET, blockchain="tezos"
        )

        assert [observation for _, observation, _ in adapter.calls] == [
            ObservationType.OWNED,
            ObservationType.CREATED,
        ]
        assert report.total_stored == 2
        assert report.promotion["artworks_created"] == 1

    async def test_created_only_derived_from_owned_listing(self, settings, uow_factory):
        adapter = opensea_adapter(
            {(ALICE, ObservationType.OWNED): [[opensea_nft("1"), opensea_nft("2", creator=ALICE)]]}
        )
        orchestrator = IndexingOrchestrator(settings, uow_factory, {Blockchain.ETHEREUM: adapter})

        report = await orchestrator.index_and_import(observation_type=ObservationType.CREATED)

        wallet = report.wallets[0]
        assert (wallet.discovered, wallet.stored, wallet.filtered) == (1, 1, 1)
        assert adapter.calls[0][1] is ObservationType.OWNED
        async with await uow_factory() as uow:
            assert await uow.artwork_index.count_distinct_tokens() == 1

    async def test_last_run_persisted_and_promotion_optional(self, settings, uow_factory):
        adapter = opensea_adapter({(ALICE, ObservationType.OWNED): [[opensea_nft("1")]]})
        orchestrator = IndexingOrchestrator(settings, uow_factory, {Blockchain.ETHEREUM: adapter})

        report = await orchestrator.index_and_import(promote=False)

        assert report.promotion is None
        async with await uow_factory() as uow:
            stored = await uow.system_state.get_state(LAST_RUN_STATE_KEY)
            assert stored == report.to_dict()
            assert (await uow.artwork_index.count_by_status())["pending"] == 1
            assert await uow.artworks.count() == 0
