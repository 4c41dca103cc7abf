from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from bridge_prices.address import AddressKind
from bridge_prices.api.base import APIError
from bridge_prices.api.envio import EnvioClient
from bridge_prices.errors import InvalidAddressError, TokenNotFoundError
from bridge_prices.models import Direction, TokenRecord
from bridge_prices.token_resolver import TokenResolver

from conftest import EVM_TOKEN, json_body, make_mint, mock_http_client

INDEXER_URL = "https://indexer.example/v1/graphql"


def token_row(address=EVM_TOKEN, mint=None, market_cap=None, **extra):
    row = {
        "id": address,
        "address": address,
        "name": "Token",
        "symbol": "TKN",
        "decimals": 18,
        "solanaMintAddress": mint,
        "totalBridgedToSolana": "100",
        "totalBridgedFromSolana": "0",
        "bridgeCountToSolana": 2,
        "bridgeCountFromSolana": 0,
        "lastBridgeTime": "1700000000",
        "marketCapUSD": market_cap,
        "priceUSD": None,
    }
    row.update(extra)
    return row


def tx_row(i, direction="BASE_TO_SOLANA"):
    return {
        "id": f"tx-{i}",
        "transactionHash": f"0xhash{i}",
        "blockNumber": str(100 + i),
        "blockTimestamp": str(1_700_000_000 + i),
        "tokenAddress": EVM_TOKEN,
        "tokenName": None,
        "tokenSymbol": "TKN",
        "decimals": 6,
        "direction": direction,
        "amount": "2500000",
        "amountFormatted": None,
        "fromAddress": "0xfrom",
        "toAddress": "0xto",
    }


def envio_with(handler):
    return EnvioClient(INDEXER_URL, client=mock_http_client(handler))


class TestEnvioClient:

    @pytest.mark.asyncio
    async def test_get_token_lowercases_address(self):
        mint, hex_mint = make_mint()
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["body"] = json_body(request)
            return httpx.Response(200, json={"data": {"Token": [token_row(mint=hex_mint)]}})

        envio = envio_with(handler)
        token = await envio.get_token("0xABCDEF0000000000000000000000000000000001")

        assert seen["url"] == INDEXER_URL
        assert seen["body"]["variables"] == {"tokenAddress": "0xabcdef0000000000000000000000000000000001"}
        assert "GetToken" in seen["body"]["query"]
        assert token.solana_mint_address == hex_mint
        assert token.total_bridged_to_solana == 100
        assert token.last_bridge_time == 1_700_000_000

    @pytest.mark.asyncio
    async def test_get_token_not_found(self):
        envio = envio_with(lambda r: httpx.Response(200, json={"data": {"Token": []}}))
        assert await envio.get_token(EVM_TOKEN) is None

    @pytest.mark.asyncio
    async def test_graphql_errors_raise(self):
        envio = envio_with(
            lambda r: httpx.Response(200, json={"errors": [{"message": "field not found"}]})
        )

        with pytest.raises(APIError, match="GraphQL errors"):
            await envio.get_token(EVM_TOKEN)

    @pytest.mark.asyncio
    async def test_solana_lookup_matches_both_encodings(self):
        mint, hex_mint = make_mint(4)
        seen = {}

        def handler(request):
            seen["body"] = json_body(request)
            return httpx.Response(200, json={"data": {"Token": [token_row(mint=hex_mint)]}})

        envio = envio_with(handler)
        token = await envio.get_token_by_solana_mint(mint)

        assert set(seen["body"]["variables"]["mints"]) == {mint, hex_mint}
        assert token.address == EVM_TOKEN

    @pytest.mark.asyncio
    async def test_latest_transactions_direction_filter(self):
        seen = {}

        def handler(request):
            seen["body"] = json_body(request)
            return httpx.Response(200, json={"data": {"BridgeTransaction": [tx_row(1, "SOLANA_TO_BASE")]}})

        envio = envio_with(handler)
        txs = await envio.get_latest_bridge_transactions(5, "solana-to-base")

        assert "_eq: SOLANA_TO_BASE" in seen["body"]["query"]
        assert seen["body"]["variables"] == {"limit": 5}
        assert txs[0].direction is Direction.SOURCE_IS_SOLANA
        assert txs[0].formatted_amount() == "2.5"

    @pytest.mark.asyncio
    async def test_latest_transactions_without_direction(self):
        seen = {}

        def handler(request):
            seen["body"] = json_body(request)
            return httpx.Response(200, json={"data": {"BridgeTransaction": []}})

        await envio_with(handler).get_latest_bridge_transactions()
        assert "direction: {" not in seen["body"]["query"]

    @pytest.mark.asyncio
    async def test_top_tokens_sorted_by_market_cap(self):
        seen = {}

        def handler(request):
            seen["body"] = json_body(request)
            return httpx.Response(200, json={"data": {"Token": [
                token_row("0xa", market_cap=None),
                token_row("0xb", market_cap="500.5"),
                token_row("0xc", market_cap="not a number"),
                token_row("0xd", market_cap="9000"),
                token_row("0xe", market_cap=""),
            ]}})

        tokens = await envio_with(handler).get_top_bridged_tokens(limit=2, direction="base-to-solana")

        assert seen["body"]["variables"] == {"limit": 10}
        assert "totalBridgedToSolana: { _gt" in seen["body"]["query"]
        assert [t.address for t in tokens] == ["0xd", "0xb"]

    @pytest.mark.asyncio
    async def test_token_transactions_paginated(self):
        def handler(request):
            query = json_body(request)["query"]
            if "CountBridgeTransactions" in query:
                return httpx.Response(200, json={"data": {"BridgeTransaction": [{"id": str(i)} for i in range(7)]}})
            if "GetTokenBridgeTransactions" in query:
                variables = json_body(request)["variables"]
                assert variables["offset"] == 3
                assert variables["limit"] == 3
                return httpx.Response(200, json={"data": {"BridgeTransaction": [tx_row(i) for i in range(3)]}})
            return httpx.Response(200, json={"data": {"Token": [token_row()]}})

        page = await envio_with(handler).get_token_bridge_transactions(EVM_TOKEN, page=2, limit=3)

        assert len(page.data) == 3
        assert page.pagination.total == 7
        assert page.pagination.total_pages == 3
        assert page.token.symbol == "TKN"

    @pytest.mark.asyncio
    async def test_all_transactions_sort_by_market_cap_uses_amount(self):
        queries = []

        def handler(request):
            query = json_body(request)["query"]
            queries.append(query)
            return httpx.Response(200, json={"data": {"BridgeTransaction": []}})

        page = await envio_with(handler).get_all_bridge_transactions(sort_by="marketCap", order="asc")

        assert any("order_by: { amount: asc }" in q for q in queries)
        assert page.pagination.total == 0
        assert page.pagination.total_pages == 0


class TestTokenResolver:

    def make_resolver(self, by_address=None, by_mint=None):
        envio = MagicMock()
        envio.get_token = AsyncMock(return_value=by_address)
        envio.get_token_by_solana_mint = AsyncMock(return_value=by_mint)
        return TokenResolver(envio), envio

    @pytest.mark.asyncio
    async def test_resolve_evm_address(self):
        mint, hex_mint = make_mint()
        resolver, envio = self.make_resolver(by_address=TokenRecord(address=EVM_TOKEN, solana_mint_address=hex_mint))

        pair = await resolver.resolve_pair(EVM_TOKEN)

        assert pair.evm_address == EVM_TOKEN
        assert pair.solana_address == hex_mint
        envio.get_token_by_solana_mint.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_lookup_solana_mint(self):
        mint, _ = make_mint()
        resolver, envio = self.make_resolver(by_mint=TokenRecord(address=EVM_TOKEN, solana_mint_address=mint))

        kind, token = await resolver.lookup(mint)

        assert kind is AddressKind.SOLANA
        assert token.address == EVM_TOKEN
        envio.get_token.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_not_found(self):
        resolver, _ = self.make_resolver()

        with pytest.raises(TokenNotFoundError):
            await resolver.resolve_pair(EVM_TOKEN)

    @pytest.mark.asyncio
    async def test_invalid_address(self):
        resolver, envio = self.make_resolver()

        with pytest.raises(InvalidAddressError):
            await resolver.resolve_pair("garbage")
        envio.get_token.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_find_solana_mint(self):
        resolver, _ = self.make_resolver(by_address=TokenRecord(address=EVM_TOKEN, solana_mint_address="mint"))
        assert await resolver.find_solana_mint(EVM_TOKEN) == "mint"

        resolver, _ = self.make_resolver()
        assert await resolver.find_solana_mint(EVM_TOKEN) is None
