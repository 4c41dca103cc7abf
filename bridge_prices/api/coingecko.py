"""CoinGecko API client for contract-address token prices."""

from typing import Any

import httpx

from .base import APIError, BaseAPIClient

# Max contract addresses per simple/token_price request
MAX_BATCH_SIZE = 100


class CoinGeckoClient(BaseAPIClient):
    """Client for CoinGecko (free tier works without a key; demo key raises limits)."""

    BASE_URL = "https://api.coingecko.com/api/v3"

    def __init__(
        self,
        api_key: str | None = None,
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

    async def get_token_prices(
        self,
        chain: str,
        addresses: list[str],
    ) -> dict[str, dict[str, Any]]:
        """
        Get USD price and market cap for token contracts on one chain.

        Args:
            chain: CoinGecko platform id ("base" or "solana")
            addresses: Contract/mint addresses (at most 100)

        Returns:
            Mapping of lowercased address -> {"usd": ..., "usd_market_cap": ...}
        """
        if not addresses:
            return {}
        if len(addresses) > MAX_BATCH_SIZE:
            raise ValueError(
                f"At most {MAX_BATCH_SIZE} addresses per request, got {len(addresses)}"
            )

        params: dict[str, Any] = {
            "contract_addresses": ",".join(addresses),
            "vs_currencies": "usd",
            "include_market_cap": "true",
        }
        if self.api_key:
            params["x_cg_demo_api_key"] = self.api_key

        data = await self.get(f"/simple/token_price/{chain}", params=params)
        if not isinstance(data, dict):
            raise APIError(f"Unexpected token_price payload for {chain}", retryable=False)

        return {
            address.lower(): info
            for address, info in data.items()
            if isinstance(info, dict)
        }

    async def get_token_price(self, chain: str, address: str) -> dict[str, Any] | None:
        """Single-address variant of get_token_prices."""
        prices = await self.get_token_prices(chain, [address])
        return prices.get(address.lower())
