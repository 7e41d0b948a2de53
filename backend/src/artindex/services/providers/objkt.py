"""objkt adapter for Tezos (GraphQL, limit/offset pagination).

One parameterized query per (wallet, observation type) returns token, creator
profile and collection (FA contract) fields in a single round trip.
"""

import httpx
import structlog

from artindex.models.enums import Blockchain, DataSource, ObservationType
from artindex.services.exceptions import ProviderRequestError
from artindex.services.providers.base import ProviderAdapter, ProviderRecord, TokenPage

logger = structlog.get_logger()

# Wrapped tez (wXTZ) shows up in inventories as an FA2 token but is a currency
WRAPPED_TEZOS_CONTRACT = "KT1TjnZYs5CGLbmV6yuW169P8Pnr9BiVwwjz"
EXCLUDED_CONTRACTS = frozenset({WRAPPED_TEZOS_CONTRACT})

TOKEN_FIELDS = """
    token_id
    name
    description
    display_uri
    thumbnail_uri
    artifact_uri
    metadata
    mime
    supply
    timestamp
    dimensions
    fa {
      contract
      name
      description
      logo
      website
    }
    creators {
      creator_address
      holder {
        address
        alias
        logo
        description
        website
        twitter
        instagram
      }
    }
    attributes {
      attribute {
        name
        type
        value
      }
    }
"""

OWNED_TOKENS_QUERY = (
    """
query WalletOwnedTokens($address: String!, $excluded: String!, $limit: Int!, $offset: Int!) {
  token_holder(
    where: {
      holder_address: {_eq: $address}
      quantity: {_gt: "0"}
      token: {fa_contract: {_neq: $excluded}}
    }
    limit: $limit
    offset: $offset
    order_by: {last_incremented_at: desc}
  ) {
    quantity
    last_incremented_at
    token {"""
    + TOKEN_FIELDS
    + """    }
  }
}
"""
)

CREATED_TOKENS_QUERY = (
    """
query WalletCreatedTokens($address: String!, $excluded: String!, $limit: Int!, $offset: Int!) {
  token(
    where: {
      creators: {creator_address: {_eq: $address}}
      fa_contract: {_neq: $excluded}
    }
    limit: $limit
    offset: $offset
    order_by: {timestamp: desc}
  ) {"""
    + TOKEN_FIELDS
    + """  }
}
"""
)


class ObjktAdapter(ProviderAdapter):
    """Fetches owned and created Tezos tokens from the objkt GraphQL API."""

    source = DataSource.OBJKT
    blockchain = Blockchain.TEZOS
    default_page_size = 500

    def __init__(
        self,
        client: httpx.AsyncClient,
        graphql_url: str = "https://data.objkt.com/v3/graphql",
        min_interval: float = 1.0,
        max_retries: int = 3,
        retry_delays: list[float] | None = None,
    ):
        super().__init__(client, min_interval, max_retries, retry_delays)
        self.graphql_url = graphql_url

    async def fetch_wallet_tokens(
        self,
        address: str,
        observation_type: ObservationType,
        page_size: int | None = None,
        cursor: str | None = None,
    ) -> TokenPage:
        limit = page_size or self.default_page_size
        offset = int(cursor) if cursor else 0

        if observation_type == ObservationType.OWNED:
            query, root = OWNED_TOKENS_QUERY, "token_holder"
        else:
            query, root = CREATED_TOKENS_QUERY, "token"

        body = await self._request_json(
            "POST",
            self.graphql_url,
            json={
                "query": query,
                "variables": {
                    "address": address,
                    "excluded": WRAPPED_TEZOS_CONTRACT,
                    "limit": limit,
                    "offset": offset,
                },
            },
        )

        body = self._require_object(body)
        if body.get("errors"):
            errors = body["errors"] if isinstance(body["errors"], list) else [body["errors"]]
            messages = "; ".join(
                str(err.get("message", err)) if isinstance(err, dict) else str(err)
                for err in errors
            )
            raise ProviderRequestError(f"objkt: GraphQL error: {messages}")

        data = body.get("data") or {}
        raw = data.get(root) if isinstance(data, dict) else data
        if raw is None:
            raw = []
        if not isinstance(raw, list):
            raise ProviderRequestError(f"objkt: unexpected {root} shape ({type(raw).__name__})")

        records: list[ProviderRecord] = []
        filtered = 0
        for item in raw:
            token = item.get("token") if root == "token_holder" and isinstance(item, dict) else item
            if not isinstance(token, dict):
                filtered += 1
                continue
            fa = token.get("fa")
            contract = fa.get("contract") if isinstance(fa, dict) else None
            token_id = token.get("token_id")
            if not contract or token_id in (None, "") or contract in EXCLUDED_CONTRACTS:
                filtered += 1
                continue
            records.append(
                ProviderRecord(
                    source=self.source,
                    blockchain=self.blockchain,
                    observation_type=observation_type,
                    wallet_address=address,
                    contract_address=contract,
                    token_id=str(token_id),
                    payload=token,
                )
            )

        # A full page means there may be more; a short page is the last one
        has_more = len(raw) == limit
        next_cursor = str(offset + limit) if has_more else None

        logger.info(
            "provider.page_fetched",
            provider=self.source.value,
            blockchain=self.blockchain.value,
            wallet=address,
            observation_type=observation_type.value,
            offset=offset,
            received=len(raw),
            kept=len(records),
            filtered=filtered,
            has_more=has_more,
        )
        return TokenPage(records=records, next_cursor=next_cursor, filtered_count=filtered)

