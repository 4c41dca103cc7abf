"""Price providers: one upstream source + chain, fronted by the price cache."""

import logging
from typing import Any

from .api.alchemy import AlchemyClient
from .api.coingecko import CoinGeckoClient
from .api.helius import HeliusClient
from .cache import ABSENT, CacheScope, PriceCache
from .models import FetchResult, PriceQuote

logger = logging.getLogger(__name__)


def _parse_int(value: Any) -> int | None:
    """Parse decimal or 0x-hex integer strings (token supplies)."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = value.strip()
        if value[:2].lower() == "0x":
            return int(value, 16)
        try:
            return int(value)
        except ValueError:
            return int(float(value))
    return int(value)


def market_cap_from_supply(raw_supply: Any, decimals: Any, price: float) -> float | None:
    """(raw_supply / 10**decimals) * price, or None when supply is unknown or unparsable."""
    try:
        supply = _parse_int(raw_supply)
        if supply is None or decimals is None:
            return None
        return supply / (10 ** int(decimals)) * price
    except (TypeError, ValueError, OverflowError):
        logger.debug("Unusable supply %r / decimals %r", raw_supply, decimals)
        return None


def parse_coingecko_quote(info: dict[str, Any] | None, observed_at: float) -> PriceQuote | None:
    """Build a quote from one simple/token_price entry; missing or zero usd is a miss."""
    if not info or not info.get("usd"):
        return None
    market_cap = info.get("usd_market_cap")
    return PriceQuote(
        price_usd=float(info["usd"]),
        market_cap_usd=float(market_cap) if market_cap else None,
        observed_at=observed_at,
    )


class PriceProvider:
    """
    Base class for price providers.

    fetch() reports HIT / MISS / ERROR; get_price() collapses that to a
    quote or None and never raises. Every upstream answer (including
    failures) is cached for the cache TTL.
    """

    name: str = "provider"
    scope: str = ""

    def __init__(self, cache: PriceCache):
        self.cache = cache

    @property
    def enabled(self) -> bool:
        """Whether the provider has what it needs (e.g. an API key)."""
        return True

    async def _fetch_quote(self, address: str) -> PriceQuote | None:
        """Query upstream. May raise; returns None when there is no price."""
        raise NotImplementedError

    async def fetch(self, address: str) -> FetchResult:
        """Look up a price, consulting the cache first."""
        if not self.enabled:
            return FetchResult.miss()

        cached = self.cache.get(self.scope, address)
        if cached is not ABSENT:
            if cached is None:
                return FetchResult.miss(cached=True)
            return FetchResult.hit(cached, cached=True)

        try:
            quote = await self._fetch_quote(address)
        except Exception as e:
            logger.warning("%s lookup failed for %s: %s", self.name, address, e)
            self.cache.set(self.scope, address, None)
            return FetchResult.failed(str(e))

        self.cache.set(self.scope, address, quote)
        if quote is None:
            logger.debug("%s has no price for %s", self.name, address)
            return FetchResult.miss()
        return FetchResult.hit(quote)

    async def get_price(self, address: str) -> PriceQuote | None:
        return (await self.fetch(address)).quote

    async def aclose(self) -> None:
        pass


class AlchemyPriceProvider(PriceProvider):
    """Base-chain prices from Alchemy: metadata (symbol, supply) then price by symbol."""

    name = "alchemy"
    scope = CacheScope.BASE_ALCHEMY

    def __init__(self, client: AlchemyClient | None, cache: PriceCache):
        super().__init__(cache)
        self.client = client

    @property
    def enabled(self) -> bool:
        return self.client is not None and bool(self.client.api_key)

    async def _fetch_quote(self, address: str) -> PriceQuote | None:
        metadata = await self.client.get_token_metadata(address)
        symbol = metadata.get("symbol")
        if not symbol:
            return None

        entry = await self.client.get_price_for_symbol(symbol)
        if not entry or not entry.get("price"):
            return None

        price = float(entry["price"])
        market_cap = entry.get("marketCap")
        if market_cap:
            market_cap = float(market_cap)
        else:
            market_cap = market_cap_from_supply(
                metadata.get("totalSupply"),
                metadata.get("decimals") or 18,
                price,
            )

        return PriceQuote(
            price_usd=price,
            market_cap_usd=market_cap,
            observed_at=self.cache.now(),
        )

    async def aclose(self) -> None:
        if self.client:
            await self.client.aclose()


class CoinGeckoPriceProvider(PriceProvider):
    """Contract-address prices from CoinGecko for one chain ("base" or "solana")."""

    name = "coingecko"

    def __init__(self, client: CoinGeckoClient, chain: str, cache: PriceCache):
        super().__init__(cache)
        self.client = client
        self.chain = chain
        self.scope = CacheScope.BASE if chain == "base" else CacheScope.SOLANA
        self.name = f"coingecko:{chain}"

    async def _fetch_quote(self, address: str) -> PriceQuote | None:
        info = await self.client.get_token_price(self.chain, address)
        return parse_coingecko_quote(info, self.cache.now())


class HeliusPriceProvider(PriceProvider):
    """
    Solana prices from the Helius DAS getAsset call.

    Market cap is (supply / 10**decimals) * price_per_token. When the asset
    carries no supply, getTokenSupply fills it in; failing that, the quote
    keeps its price without a market cap.
    """

    name = "helius"
    scope = CacheScope.SOLANA_HELIUS

    def __init__(self, client: HeliusClient | None, cache: PriceCache):
        super().__init__(cache)
        self.client = client

    @property
    def enabled(self) -> bool:
        return self.client is not None and bool(self.client.api_key)

    async def _fetch_quote(self, address: str) -> PriceQuote | None:
        asset = await self.client.get_asset(address)
        token_info = asset.get("token_info") or {}
        price_info = token_info.get("price_info")
        if not price_info or not price_info.get("price_per_token"):
            return None

        price = float(price_info["price_per_token"])
        market_cap = None
        if token_info.get("supply") is not None and token_info.get("decimals") is not None:
            market_cap = market_cap_from_supply(
                token_info["supply"], token_info["decimals"], price
            )
        else:
            market_cap = await self._market_cap_from_rpc(address, price)

        return PriceQuote(
            price_usd=price,
            market_cap_usd=market_cap,
            observed_at=self.cache.now(),
        )

    async def _market_cap_from_rpc(self, mint: str, price: float) -> float | None:
        try:
            supply = await self.client.get_token_supply_ui(mint)
        except Exception as e:
            logger.debug("getTokenSupply failed for %s: %s", mint, e)
            return None
        return supply * price if supply is not None else None

    async def aclose(self) -> None:
        if self.client:
            await self.client.aclose()
