"""Envio indexer client (Hasura-style GraphQL) for bridge tokens and transfers."""

import asyncio
import logging
import math
from typing import Any

import httpx

from ..address import base58_to_bytes32, hex_to_base58
from ..models import (
    BridgeTransaction,
    Direction,
    Pagination,
    TokenRecord,
    TransactionPage,
)
from .base import APIError, BaseAPIClient

logger = logging.getLogger(__name__)

TOKEN_FIELDS = """
        id
        address
        name
        symbol
        decimals
        solanaMintAddress
        totalBridgedToSolana
        totalBridgedFromSolana
        bridgeCountToSolana
        bridgeCountFromSolana
        lastBridgeTime
        marketCapUSD
        priceUSD
"""

TRANSACTION_FIELDS = """
        id
        transactionHash
        blockNumber
        blockTimestamp
        tokenAddress
        tokenName
        tokenSymbol
        decimals
        direction
        amount
        amountFormatted
        fromAddress
        toAddress
"""


class EnvioClient(BaseAPIClient):
    """Read-only client for the bridge indexer's GraphQL endpoint."""

    def __init__(
        self,
        api_url: str,
        timeout: float = 10.0,
        max_retries: int = 2,
        client: httpx.AsyncClient | None = None,
    ):
        super().__init__(
            base_url=api_url,
            timeout=timeout,
            max_retries=max_retries,
            client=client,
        )

    async def query(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Run a GraphQL query and return its `data` object.

        Raises:
            APIError: on HTTP failure or when the response carries `errors`
        """
        result = await self.post("", json_data={"query": query, "variables": variables or {}})

        if not isinstance(result, dict):
            raise APIError("Unexpected GraphQL payload", retryable=False)
        if result.get("errors"):
            raise APIError(f"GraphQL errors: {result['errors']}", retryable=False)

        return result.get("data") or {}

    async def get_token(self, token_address: str) -> TokenRecord | None:
        """Get a token record by its Base (EVM) address."""
        query = f"""
    query GetToken($tokenAddress: String!) {{
      Token(where: {{ address: {{ _eq: $tokenAddress }} }}, limit: 1) {{{TOKEN_FIELDS}      }}
    }}
"""
        data = await self.query(query, {"tokenAddress": token_address.lower()})
        rows = data.get("Token") or []
        return TokenRecord.from_envio(rows[0]) if rows else None

    async def get_token_by_solana_mint(self, mint: str) -> TokenRecord | None:
        """
        Get a token record by its Solana mint.

        The indexer may store the mint as base58 or as bytes32 hex, so
        both encodings are matched.
        """
        candidates = {mint}
        as_base58 = hex_to_base58(mint)
        if as_base58:
            candidates.add(as_base58)
            as_hex = base58_to_bytes32(as_base58)
            if as_hex:
                candidates.add(as_hex)

        query = f"""
    query GetTokenBySolana($mints: [String!]!) {{
      Token(where: {{ solanaMintAddress: {{ _in: $mints }} }}, limit: 1) {{{TOKEN_FIELDS}      }}
    }}
"""
        data = await self.query(query, {"mints": sorted(candidates)})
        rows = data.get("Token") or []
        return TokenRecord.from_envio(rows[0]) if rows else None

    async def get_latest_bridge_transactions(
        self,
        limit: int = 10,
        direction: Direction | str | None = None,
    ) -> list[BridgeTransaction]:
        """Most recent bridge transfers, optionally filtered by direction."""
        direction_value = Direction.parse(direction).to_indexer()
        where = (
            f"\n        where: {{ direction: {{ _eq: {direction_value} }} }}"
            if direction_value else ""
        )

        query = f"""
    query GetLatestBridgeTransactions($limit: Int!) {{
      BridgeTransaction(
        order_by: {{ blockTimestamp: desc }}
        limit: $limit{where}
      ) {{{TRANSACTION_FIELDS}      }}
    }}
"""
        data = await self.query(query, {"limit": limit})
        return [BridgeTransaction.from_envio(row) for row in data.get("BridgeTransaction") or []]

    async def get_top_bridged_tokens(
        self,
        limit: int = 10,
        direction: Direction | str | None = None,
    ) -> list[TokenRecord]:
        """
        Tokens with bridge activity, sorted by market cap (highest first).

        Fetches five times the limit since tokens without market cap data
        sort to the end.
        """
        parsed = Direction.parse(direction)
        if parsed is Direction.SOURCE_IS_SOLANA:
            where = 'where: { totalBridgedFromSolana: { _gt: "0" } }'
        elif parsed is Direction.SOURCE_IS_EVM:
            where = 'where: { totalBridgedToSolana: { _gt: "0" } }'
        else:
            where = (
                'where: { _or: [{ totalBridgedToSolana: { _gt: "0" } }, '
                '{ totalBridgedFromSolana: { _gt: "0" } }] }'
            )

        query = f"""
    query GetTopBridgedTokens($limit: Int!) {{
      Token(
        {where}
        limit: $limit
      ) {{{TOKEN_FIELDS}      }}
    }}
"""
        data = await self.query(query, {"limit": limit * 5})
        tokens = [TokenRecord.from_envio(row) for row in data.get("Token") or []]

        def market_cap_key(token: TokenRecord) -> float:
            mcap = token.market_cap_usd
            if mcap is None or math.isnan(mcap):
                return float("-inf")
            return mcap

        tokens.sort(key=market_cap_key, reverse=True)
        return tokens[:limit]

    async def _count_transactions(self, where: str = "", variables: str = "", values: dict | None = None) -> int:
        query = f"""
    query CountBridgeTransactions{variables} {{
      BridgeTransaction{where} {{
        id
      }}
    }}
"""
        data = await self.query(query, values)
        return len(data.get("BridgeTransaction") or [])

    async def get_all_bridge_transactions(
        self,
        sort_by: str = "timestamp",
        order: str = "desc",
        page: int = 1,
        limit: int = 50,
    ) -> TransactionPage:
        """
        Paginated bridge transfers across all tokens.

        sort_by "marketCap" orders by amount, since the indexer has no
        per-transaction market cap.
        """
        order_by = "blockTimestamp" if sort_by == "timestamp" else "amount"
        order_dir = "asc" if order == "asc" else "desc"
        page = max(1, page)
        offset = (page - 1) * limit

        query = f"""
    query GetAllBridgeTransactions($limit: Int!, $offset: Int!) {{
      BridgeTransaction(
        order_by: {{ {order_by}: {order_dir} }}
        limit: $limit
        offset: $offset
      ) {{{TRANSACTION_FIELDS}      }}
    }}
"""
        total, data = await asyncio.gather(
            self._count_transactions(),
            self.query(query, {"limit": limit, "offset": offset}),
        )

        return TransactionPage(
            data=[BridgeTransaction.from_envio(row) for row in data.get("BridgeTransaction") or []],
            pagination=Pagination.build(page, limit, total),
        )

    async def get_token_bridge_transactions(
        self,
        token_address: str,
        page: int = 1,
        limit: int = 50,
    ) -> TransactionPage:
        """Paginated bridge transfers for one token, with its token record."""
        token_address = token_address.lower()
        page = max(1, page)
        offset = (page - 1) * limit

        query = f"""
    query GetTokenBridgeTransactions($tokenAddress: String!, $limit: Int!, $offset: Int!) {{
      BridgeTransaction(
        where: {{ tokenAddress: {{ _eq: $tokenAddress }} }}
        order_by: {{ blockTimestamp: desc }}
        limit: $limit
        offset: $offset
      ) {{{TRANSACTION_FIELDS}      }}
    }}
"""
        token, total, data = await asyncio.gather(
            self.get_token(token_address),
            self._count_transactions(
                where="(where: { tokenAddress: { _eq: $tokenAddress } })",
                variables="($tokenAddress: String!)",
                values={"tokenAddress": token_address},
            ),
            self.query(query, {"tokenAddress": token_address, "limit": limit, "offset": offset}),
        )

        return TransactionPage(
            data=[BridgeTransaction.from_envio(row) for row in data.get("BridgeTransaction") or []],
            pagination=Pagination.build(page, limit, total),
            token=token,
        )
