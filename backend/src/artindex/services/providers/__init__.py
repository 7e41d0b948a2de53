"""Provider adapters: one per upstream token data source."""

from artindex.services.providers.base import ProviderAdapter, ProviderRecord, TokenPage
from artindex.services.providers.factory import build_adapters, create_http_client
from artindex.services.providers.objkt import ObjktAdapter
from artindex.services.providers.opensea import OpenSeaAdapter
from artindex.services.providers.rate_limiter import MinIntervalRateLimiter

__all__ = [
    "MinIntervalRateLimiter",
    "ObjktAdapter",
    "OpenSeaAdapter",
    "ProviderAdapter",
    "ProviderRecord",
    "TokenPage",
    "build_adapters",
    "create_http_client",
]
