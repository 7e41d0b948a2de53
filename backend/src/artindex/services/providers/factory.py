"""Builds the shared HTTP client and one adapter per supported blockchain."""

import httpx
import structlog

from artindex.core.config import Settings
from artindex.models.enums import Blockchain
from artindex.services.providers.base import ProviderAdapter
from artindex.services.providers.objkt import ObjktAdapter
from artindex.services.providers.opensea import OPENSEA_CHAINS, OpenSeaAdapter
from artindex.services.providers.rate_limiter import MinIntervalRateLimiter

logger = structlog.get_logger()


def create_http_client(settings: Settings) -> httpx.AsyncClient:
    """Create the httpx client shared by every adapter (caller closes it)."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.provider_timeout_seconds),
        headers={"User-Agent": "artindex-indexer/0.1"},
        follow_redirects=True,
    )


def build_adapters(
    settings: Settings, client: httpx.AsyncClient
) -> dict[Blockchain, ProviderAdapter]:
    """Create adapters keyed by the blockchain they serve.

    OpenSea adapters for the EVM chains share one rate limiter, since the
    marketplace enforces its limit per API key rather than per chain. EVM
    chains are left unserved when no OpenSea API key is configured.
    """
    adapters: dict[Blockchain, ProviderAdapter] = {}

    if settings.opensea_api_key:
        opensea_limiter = MinIntervalRateLimiter(
            settings.opensea_min_interval_seconds, name="opensea"
        )
        for chain in OPENSEA_CHAINS:
            adapter = OpenSeaAdapter(
                client,
                api_key=settings.opensea_api_key,
                base_url=settings.opensea_base_url,
                blockchain=chain,
                max_retries=settings.provider_max_retries,
                rate_limiter=opensea_limiter,
            )
            adapter.default_page_size = settings.opensea_page_size
            adapters[chain] = adapter
    else:
        logger.warning("providers.opensea_disabled", reason="OPENSEA_API_KEY not set")

    objkt = ObjktAdapter(
        client,
        graphql_url=settings.objkt_graphql_url,
        min_interval=settings.objkt_min_interval_seconds,
        max_retries=settings.provider_max_retries,
    )
    objkt.default_page_size = settings.objkt_page_size
    adapters[Blockchain.TEZOS] = objkt

    return adapters
