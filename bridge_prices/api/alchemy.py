"""Alchemy API client for Base token metadata and prices."""

from typing import Any

import httpx

from .base import APIError, BaseAPIClient


class AlchemyClient(BaseAPIClient):
    """
    Client for Alchemy on Base mainnet.

    Prices are looked up by symbol, so a metadata call
    (alchemy_getTokenMetadata) has to resolve the symbol first.
    """

    BASE_URL = "https://base-mainnet.g.alchemy.com/v2"

    def __init__(
        self,
        api_key: str,
        timeout: float = 10.0,
        max_retries: int = 2,
        client: httpx.AsyncClient | None = None,
    ):
        super().__init__(
            base_url=self.BASE_URL,
            timeout=timeout,
            max_retries=max_retries,
            client=client,
        )
        self.api_key = api_key

    async def get_token_metadata(self, token_address: str) -> dict[str, Any]:
        """
        Get ERC-20 metadata for a contract.

        Args:
            token_address: Token contract address

        Returns:
            Dict with name, symbol, decimals, totalSupply (any may be missing)
        """
        result = await self.rpc_request(
            self.api_key,
            "alchemy_getTokenMetadata",
            [token_address],
        )
        return result or {}

    async def get_prices_by_symbol(self, symbol: str) -> list[dict[str, Any]]:
        """
        Get USD price entries for a token symbol.

        Args:
            symbol: Token ticker symbol

        Returns:
            List of {symbol, price, marketCap} entries
        """
        data = await self.get(f"{self.api_key}/prices", params={"symbol": symbol})
        if not isinstance(data, dict):
            raise APIError("Unexpected prices payload", retryable=False)
        if data.get("error"):
            raise APIError(f"Prices API error: {data['error']}", retryable=False)
        return data.get("prices") or []

    async def get_price_for_symbol(self, symbol: str) -> dict[str, Any] | None:
        """Return the price entry whose symbol matches (case-insensitive)."""
        prices = await self.get_prices_by_symbol(symbol)
        for entry in prices:
            if str(entry.get("symbol", "")).upper() == symbol.upper():
                return entry
        return None
