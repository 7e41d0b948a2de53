"""Provider adapter interface shared by all upstream token data sources."""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, AsyncIterator

import httpx
import structlog

from artindex.models.enums import Blockchain, DataSource, ObservationType
from artindex.services.exceptions import (
    ProviderAuthError,
    ProviderNetworkError,
    ProviderRateLimitError,
    ProviderRequestError,
    TransientError,
)
from artindex.services.providers.rate_limiter import MinIntervalRateLimiter

logger = structlog.get_logger()


@dataclass
class ProviderRecord:
    """One provider-shaped token record, tagged with the source that produced it."""

    source: DataSource
    blockchain: Blockchain
    observation_type: ObservationType
    wallet_address: str
    contract_address: str | None
    token_id: str | None
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass
class TokenPage:
    """A page of records plus the cursor for the next page (None when done)."""

    records: list[ProviderRecord]
    next_cursor: str | None = None
    filtered_count: int = 0  # Records dropped as non-collectible

    @property
    def done(self) -> bool:
        return self.next_cursor is None


class ProviderAdapter(ABC):
    """Base class for provider adapters.

    Subclasses implement fetch_wallet_tokens() with their own pagination idiom.
    The base class owns request pacing (one rate limiter per adapter instance),
    HTTP status classification and retry with backoff for transient failures.
    """

    source: DataSource
    blockchain: Blockchain
    default_page_size: int = 50
    observation_types: tuple[ObservationType, ...] = (
        ObservationType.OWNED,
        ObservationType.CREATED,
    )

    def __init__(
        self,
        client: httpx.AsyncClient,
        min_interval: float = 0.0,
        max_retries: int = 3,
        retry_delays: list[float] | None = None,
        rate_limiter: MinIntervalRateLimiter | None = None,
    ):
        """Initialize adapter.

        Args:
            client: Shared httpx client (owned by the caller)
            min_interval: Minimum seconds between requests to this provider
            max_retries: Attempts per request before giving up
            retry_delays: Backoff schedule in seconds (default: [1, 2, 4])
            rate_limiter: Existing limiter to share between adapters that hit the
                same provider (e.g. one marketplace serving several chains)
        """
        self.client = client
        self.max_retries = max(1, max_retries)
        self.retry_delays = retry_delays if retry_delays is not None else [1, 2, 4]
        self.rate_limiter = rate_limiter or MinIntervalRateLimiter(
            min_interval, name=self.source.value
        )

    def supports(self, observation_type: ObservationType) -> bool:
        return observation_type in self.observation_types

    @abstractmethod
    async def fetch_wallet_tokens(
        self,
        address: str,
        observation_type: ObservationType,
        page_size: int | None = None,
        cursor: str | None = None,
    ) -> TokenPage:
        """Fetch one page of tokens owned or created by a wallet.

        Args:
            address: Wallet address to query
            observation_type: owned or created
            page_size: Records per page (adapter default when None)
            cursor: Opaque cursor returned by the previous page (None for first page)

        Returns:
            TokenPage with non-collectible records already filtered out

        Raises:
            TransientError: Retries exhausted on network/rate-limit failures
            PermanentError: Authentication or request errors
        """

    async def iter_wallet_tokens(
        self,
        address: str,
        observation_type: ObservationType,
        page_size: int | None = None,
    ) -> AsyncIterator[TokenPage]:
        """Yield every page for a wallet in provider order."""
        cursor: str | None = None
        while True:
            page = await self.fetch_wallet_tokens(address, observation_type, page_size, cursor)
            yield page
            if page.done:
                return
            cursor = page.next_cursor

    async def _request_json(self, method: str, url: str, **kwargs: Any) -> Any:
        """Send a paced request, retrying transient failures with backoff.

        Returns:
            Decoded JSON body

        Raises:
            TransientError: Still failing after max_retries attempts
            PermanentError: Non-retryable failure (raised immediately)
        """
        for attempt in range(self.max_retries):
            await self.rate_limiter.acquire()
            try:
                return await self._send(method, url, **kwargs)

            except TransientError as e:
                delay = self.retry_delays[min(attempt, len(self.retry_delays) - 1)]
                if isinstance(e, ProviderRateLimitError) and e.retry_after:
                    delay = max(delay, e.retry_after)

                if attempt < self.max_retries - 1:
                    logger.warning(
                        "provider.request_retry",
                        provider=self.source.value,
                        error=str(e),
                        error_type=type(e).__name__,
                        attempt=attempt + 1,
                        retry_in_seconds=delay,
                    )
                    if isinstance(e, ProviderRateLimitError):
                        await self.rate_limiter.penalize(delay)
                    else:
                        await asyncio.sleep(delay)
                else:
                    logger.error(
                        "provider.retries_exhausted",
                        provider=self.source.value,
                        error=str(e),
                        error_type=type(e).__name__,
                        attempts=self.max_retries,
                    )
                    raise

        # Unreachable: the last attempt either returns or raises
        raise ProviderNetworkError(f"{self.source.value}: request loop exited unexpectedly")

    async def _send(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise ProviderNetworkError(f"{self.source.value}: request timeout: {e}") from e
        except httpx.TransportError as e:
            raise ProviderNetworkError(f"{self.source.value}: network error: {e}") from e

        self._raise_for_status(response)
        try:
            return response.json()
        except ValueError as e:
            raise ProviderNetworkError(
                f"{self.source.value}: invalid JSON body ({response.status_code})"
            ) from e

    def _require_object(self, body: Any) -> dict[str, Any]:
        """Return the decoded body when it is a JSON object.

        Raises:
            ProviderRequestError: If the body has any other shape
        """
        if not isinstance(body, dict):
            raise ProviderRequestError(
                f"{self.source.value}: unexpected response body ({type(body).__name__})"
            )
        return body

    def _raise_for_status(self, response: httpx.Response) -> None:
        """Classify HTTP status codes into the service error hierarchy."""
        code = response.status_code
        if code < 400:
            return
        body = response.text[:500]
        if code == 429:
            raise ProviderRateLimitError(
                f"{self.source.value}: rate limit exceeded",
                retry_after=_parse_retry_after(response.headers.get("Retry-After")),
            )
        if code >= 500:
            raise ProviderNetworkError(f"{self.source.value}: service unavailable ({code}): {body}")
        if code in (401, 403):
            raise ProviderAuthError(
                f"{self.source.value}: unauthorized ({code}). Check the provider API key."
            )
        raise ProviderRequestError(f"{self.source.value}: bad request ({code}): {body}")


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None
