"""Integration tests for the administrative API endpoints.

Tests the operator surface end to end against a real database:
- POST /api/admin/import - Single record promoted, list queued, invalid input rejected
- POST /api/admin/process-queue - Queue summary
- POST /api/admin/index-wallets - Run report with per-wallet errors
- GET /api/admin/index - Collapsed listing with camelCase keys
- GET /api/admin/index/stats, GET /api/admin/indexer/last-run
- DELETE /api/admin/artworks - Deletion with staged record decoupling
- GET /health
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from artindex.app import create_app
from artindex.models.enums import Blockchain, DataSource, ObservationType
from artindex.services.exceptions import ProviderAuthError
from artindex.services.providers.base import ProviderAdapter, ProviderRecord, TokenPage

CONTRACT = "0xc0ffee0000000000000000000000000000000001"
ALICE = "0x00000000000000000000000000000000000a11ce"


class StaticAdapter(ProviderAdapter):
    """Single-page adapter; raises `error` instead when set."""

    source = DataSource.OPENSEA
    blockchain = Blockchain.ETHEREUM
    observation_types = (ObservationType.OWNED,)

    def __init__(self, nfts: list[dict], error: Exception | None = None):
        super().__init__(client=None, min_interval=0)  # type: ignore[arg-type]
        self.nfts = nfts
        self.error = error

    async def fetch_wallet_tokens(self, address, observation_type, page_size=None, cursor=None):
        if self.error:
            raise self.error
        records = [
            ProviderRecord(
                source=self.source,
                blockchain=self.blockchain,
                observation_type=observation_type,
                wallet_address=address,
                contract_address=nft["contract"],
                token_id=nft["identifier"],
                payload=nft,
            )
            for nft in self.nfts
        ]
        return TokenPage(records=records)


@pytest.fixture
def app(settings, session_factory, uow_factory):
    """App with the state the lifespan would normally provide."""
    application = create_app(settings)
    application.state.session_factory = session_factory
    application.state.uow_factory = uow_factory
    application.state.adapters = {
        Blockchain.ETHEREUM: StaticAdapter(
            [{"identifier": "1", "contract": CONTRACT, "name": "Dawn #1"}]
        )
    }
    return application


@pytest_asyncio.fixture
async def test_client(app):
    """Provide AsyncClient for testing API endpoints with database access."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.mark.asyncio
class TestImportEndpoint:
    async def test_single_record_promoted(self, test_client):
        response = await test_client.post(
            "/api/admin/import",
            json={
                "contractAddress": CONTRACT,
                "tokenId": "5",
                "title": "Manual",
                "creator": {"address": ALICE, "displayName": "Alice"},
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["mode"] == "promoted"
        assert data["success"] is True
        assert data["artwork_id"] is not None
        assert data["artist_id"] is not None

    async def test_single_record_without_token_rejected(self, test_client):
        response = await test_client.post(
            "/api/admin/import", json={"contractAddress": CONTRACT, "title": "No token"}
        )

        assert response.status_code == 400
        assert "tokenId" in response.json()["detail"]

    async def test_batch_is_queued_then_processed(self, test_client):
        response = await test_client.post(
            "/api/admin/import",
            json=[
                {"contractAddress": CONTRACT, "tokenId": "1"},
                {"contractAddress": CONTRACT, "tokenId": "2"},
                {"contractAddress": CONTRACT},
            ],
        )

        assert response.status_code == 200
        assert response.json() == {"mode": "queued", "stored": 2, "skipped": 1, "errors": []}

        response = await test_client.post("/api/admin/process-queue", json={"limit": 10})

        assert response.status_code == 200
        summary = response.json()
        assert (summary["processed"], summary["succeeded"], summary["failed"]) == (2, 2, 0)

    async def test_process_queue_accepts_empty_body(self, test_client):
        response = await test_client.post("/api/admin/process-queue")

        assert response.status_code == 200
        assert response.json()["processed"] == 0


@pytest.mark.asyncio
class TestIndexListing:
    async def test_listing_uses_camel_case_and_collapses(self, test_client):
        for observation_type in ("owned", "created"):
            await test_client.post(
                "/api/admin/import",
                json={
                    "contractAddress": CONTRACT,
                    "tokenId": "9",
                    "title": "Collapsed",
                    "observationType": observation_type,
                },
            )

        response = await test_client.get("/api/admin/index", params={"search": "collapsed"})

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        item = data["items"][0]
        assert item["contractAddress"] == CONTRACT
        assert item["tokenId"] == "9"
        assert item["observationTypes"] == ["created", "owned"]
        assert item["rowCount"] == 2
        assert item["importStatus"] == "imported"
        assert item["title"] == "Collapsed"
        assert item["artworkId"] is not None

    async def test_listing_filters_by_status(self, test_client):
        await test_client.post(
            "/api/admin/import", json=[{"contractAddress": CONTRACT, "tokenId": "1"}]
        )

        pending = await test_client.get("/api/admin/index", params={"status": "pending"})
        failed = await test_client.get("/api/admin/index", params={"status": "failed"})

        assert pending.json()["total"] == 1
        assert failed.json()["total"] == 0

    async def test_invalid_status_rejected(self, test_client):
        response = await test_client.get("/api/admin/index", params={"status": "unknown"})
        assert response.status_code == 422

    async def test_stats(self, test_client):
        await test_client.post(
            "/api/admin/import", json={"contractAddress": CONTRACT, "tokenId": "1"}
        )

        response = await test_client.get("/api/admin/index/stats")

        assert response.status_code == 200
        stats = response.json()
        assert stats["by_status"]["imported"] == 1
        assert stats["staged_rows"] == 1
        assert stats["distinct_tokens"] == 1
        assert stats["artworks"] == 1
        assert stats["collections"] == 1
        assert stats["artists"] == 0

    async def test_reset_failed_with_nothing_failed(self, test_client):
        response = await test_client.post("/api/admin/index/reset-failed")

        assert response.status_code == 200
        assert response.json() == {"reset": 0}


@pytest.mark.asyncio
class TestIndexWalletsEndpoint:
    async def test_run_report_and_last_run(self, test_client):
        missing = await test_client.get("/api/admin/indexer/last-run")
        assert missing.status_code == 404

        response = await test_client.post("/api/admin/index-wallets", json={})

        assert response.status_code == 200
        report = response.json()
        assert report["status"] == "success"
        assert report["total_wallets"] == 1
        assert report["total_stored"] == 1
        assert report["promotion"]["succeeded"] == 1

        last_run = await test_client.get("/api/admin/indexer/last-run")
        assert last_run.status_code == 200
        assert last_run.json()["started_at"] == report["started_at"]

    async def test_provider_error_is_reported_not_raised(self, app, test_client):
        error = ProviderAuthError("opensea: unauthorized (401)")
        app.state.adapters = {Blockchain.ETHEREUM: StaticAdapter([], error=error)}

        response = await test_client.post(
            "/api/admin/index-wallets",
            json={"walletAddress": ALICE, "blockchain": "ethereum", "observationType": "owned"},
        )

        assert response.status_code == 200
        report = response.json()
        assert report["status"] == "failed"
        assert report["wallets"][0]["errors"] == ["owned: opensea: unauthorized (401)"]


@pytest.mark.asyncio
class TestDeleteArtworks:
    async def test_delete_decouples_staged_record(self, test_client):
        promoted = await test_client.post(
            "/api/admin/import", json={"contractAddress": CONTRACT, "tokenId": "1"}
        )
        artwork_id = promoted.json()["artwork_id"]

        response = await test_client.request(
            "DELETE", "/api/admin/artworks", json={"artworkIds": [artwork_id]}
        )

        assert response.status_code == 200
        assert response.json() == {"deleted": 1, "decoupled": 1}

        listing = (await test_client.get("/api/admin/index")).json()
        assert listing["items"][0]["importStatus"] == "pending"
        assert listing["items"][0]["artworkId"] is None

    async def test_delete_requires_ids(self, test_client):
        response = await test_client.request(
            "DELETE", "/api/admin/artworks", json={"artworkIds": []}
        )
        assert response.status_code == 422


@pytest.mark.asyncio
async def test_health_check(test_client):
    response = await test_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}
