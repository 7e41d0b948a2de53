"""OpenSea adapter for EVM chains (REST, cursor pagination, API key header)."""

from typing import Any

import httpx
import structlog

from artindex.models.enums import Blockchain, DataSource, ObservationType
from artindex.services.exceptions import ProviderRequestError
from artindex.services.providers.base import ProviderAdapter, ProviderRecord, TokenPage
from artindex.services.providers.rate_limiter import MinIntervalRateLimiter

logger = structlog.get_logger()

# Chain identifiers used in OpenSea v2 URLs
OPENSEA_CHAINS = {
    Blockchain.ETHEREUM: "ethereum",
    Blockchain.BASE: "base",
    Blockchain.POLYGON: "matic",
    Blockchain.SHAPE: "shape",
}

COLLECTIBLE_STANDARDS = frozenset({"erc721", "erc1155", "cryptopunks"})


class OpenSeaAdapter(ProviderAdapter):
    """Fetches NFTs held by an account from the OpenSea v2 API.

    The account listing only exposes holdings, so this adapter serves the
    "owned" observation type. Tokens the wallet created are recognized later,
    when the normalized creator matches the indexing wallet.
    """

    source = DataSource.OPENSEA
    default_page_size = 50
    observation_types = (ObservationType.OWNED,)

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        base_url: str = "https://api.opensea.io",
        blockchain: Blockchain = Blockchain.ETHEREUM,
        min_interval: float = 3.0,
        max_retries: int = 3,
        retry_delays: list[float] | None = None,
        rate_limiter: MinIntervalRateLimiter | None = None,
    ):
        """Initialize OpenSea adapter.

        Args:
            client: Shared httpx client
            api_key: OpenSea API key (sent as X-API-KEY)
            base_url: API origin (overridable for tests)
            blockchain: EVM chain to query
            min_interval: Minimum seconds between OpenSea requests
            max_retries: Attempts per page
            retry_delays: Backoff schedule in seconds
            rate_limiter: Limiter shared with adapters for other chains

        Raises:
            ValueError: If the chain is not served by OpenSea
        """
        if blockchain not in OPENSEA_CHAINS:
            raise ValueError(f"OpenSea does not serve blockchain {blockchain.value}")
        self.blockchain = blockchain
        super().__init__(client, min_interval, max_retries, retry_delays, rate_limiter)
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")

    async def fetch_wallet_tokens(
        self,
        address: str,
        observation_type: ObservationType,
        page_size: int | None = None,
        cursor: str | None = None,
    ) -> TokenPage:
        if not self.supports(observation_type):
            raise ValueError(f"OpenSea adapter does not support {observation_type.value} lookups")

        limit = page_size or self.default_page_size
        params: dict[str, Any] = {"limit": limit}
        if cursor:
            params["next"] = cursor

        chain = OPENSEA_CHAINS[self.blockchain]
        data = await self._request_json(
            "GET",
            f"{self.base_url}/api/v2/chain/{chain}/account/{address}/nfts",
            params=params,
            headers={"X-API-KEY": self.api_key, "Accept": "application/json"},
        )

        data = self._require_object(data)
        nfts = data.get("nfts") or []
        if not isinstance(nfts, list):
            raise ProviderRequestError(f"opensea: unexpected nfts shape ({type(nfts).__name__})")
        records: list[ProviderRecord] = []
        filtered = 0
        for nft in nfts:
            if not self._is_collectible(nft):
                filtered += 1
                continue
            records.append(
                ProviderRecord(
                    source=self.source,
                    blockchain=self.blockchain,
                    observation_type=observation_type,
                    wallet_address=address,
                    contract_address=str(nft["contract"]).lower(),
                    token_id=str(nft["identifier"]),
                    payload=nft,
                )
            )

        next_cursor = data.get("next") or None
        logger.info(
            "provider.page_fetched",
            provider=self.source.value,
            blockchain=self.blockchain.value,
            wallet=address,
            observation_type=observation_type.value,
            received=len(nfts),
            kept=len(records),
            filtered=filtered,
            has_more=next_cursor is not None,
        )
        return TokenPage(records=records, next_cursor=next_cursor, filtered_count=filtered)

    @staticmethod
    def _is_collectible(nft: dict[str, Any]) -> bool:
        if not isinstance(nft, dict):
            return False
        if not nft.get("contract") or nft.get("identifier") in (None, ""):
            return False
        standard = (nft.get("token_standard") or "erc721").lower()
        return standard in COLLECTIBLE_STANDARDS
