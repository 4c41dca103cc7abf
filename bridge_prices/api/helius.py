"""Helius API client for Solana token prices and supply."""

from typing import Any

import httpx

from .base import BaseAPIClient


class HeliusClient(BaseAPIClient):
    """
    Client for Helius (FREE tier: 1M credits/month).

    Primary use: DAS getAsset with showFungible, which returns
    token_info.price_info alongside raw supply and decimals.
    """

    RPC_BASE_URL = "https://mainnet.helius-rpc.com"
    SUPPLY_RPC_URL = "https://rpc.helius.xyz"

    def __init__(
        self,
        api_key: str,
        timeout: float = 10.0,
        max_retries: int = 2,
        client: httpx.AsyncClient | None = None,
    ):
        super().__init__(
            base_url=self.RPC_BASE_URL,
            timeout=timeout,
            max_retries=max_retries,
            client=client,
        )
        self.api_key = api_key
        self.rpc_url = f"{self.RPC_BASE_URL}/?api-key={api_key}"
        self.supply_rpc_url = f"{self.SUPPLY_RPC_URL}/?api-key={api_key}"

    async def get_asset(self, mint: str) -> dict[str, Any]:
        """
        Get DAS asset data for a fungible token.

        Args:
            mint: Token mint address (base58)

        Returns:
            Asset dict; token_info holds supply, decimals and price_info
        """
        result = await self.rpc_request(
            self.rpc_url,
            "getAsset",
            {
                "id": mint,
                "displayOptions": {"showFungible": True},
            },
            request_id="bridge-prices",
        )
        return result or {}

    async def get_token_supply(self, mint: str) -> dict[str, Any]:
        """Get token supply info including decimals and uiAmount."""
        result = await self.rpc_request(
            self.supply_rpc_url,
            "getTokenSupply",
            [mint],
            request_id="supply-lookup",
        )
        return result.get("value", {}) if result else {}

    async def get_token_supply_ui(self, mint: str) -> float | None:
        """
        Get token supply as a human-readable float.

        Falls back to the raw amount string when uiAmount is missing.
        """
        supply_info = await self.get_token_supply(mint)
        if not supply_info:
            return None
        if supply_info.get("uiAmount") is not None:
            return float(supply_info["uiAmount"])
        return float(supply_info.get("amount") or 0)
