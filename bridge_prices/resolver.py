"""Price resolution engine - per-chain provider fallback and price selection."""

import asyncio
import logging
import time
from typing import Any, Iterable

import httpx

from .address import AddressKind, classify_address, hex_to_base58
from .api.alchemy import AlchemyClient
from .api.coingecko import CoinGeckoClient
from .api.envio import EnvioClient
from .api.helius import HeliusClient
from .batch import BatchResolver
from .cache import PriceCache
from .config import Config, get_config
from .errors import BridgePriceError
from .models import (
    AddressPair,
    ChainPricePair,
    Direction,
    FetchStatus,
    PriceQuote,
    SelectedPrice,
)
from .providers import (
    AlchemyPriceProvider,
    CoinGeckoPriceProvider,
    HeliusPriceProvider,
    PriceProvider,
)
from .token_resolver import TokenResolver

logger = logging.getLogger(__name__)

# Extra per-call Helius keys kept open at once
MAX_HELIUS_OVERRIDES = 8


def _pick(field: str, *quotes: Any) -> Any:
    """First non-None value of `field` across quotes, skipping absent quotes."""
    for quote in quotes:
        value = getattr(quote, field, None) if quote is not None else None
        if value is not None:
            return value
    return None


class PriceResolver:
    """
    Core price resolution engine.

    Each chain has an ordered list of providers; the first one to return
    a quote wins. Base: Alchemy (when keyed) then CoinGecko. Solana:
    Helius (when keyed) then CoinGecko. The two chains never fall back
    to each other here; select_price() does that per field.
    """

    def __init__(
        self,
        config: Config | None = None,
        cache: PriceCache | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.config = config or get_config()
        self.cache = cache if cache is not None else PriceCache()
        self._http_client = http_client

        client_opts = {
            "timeout": self.config.request_timeout,
            "max_retries": self.config.max_retries,
            "client": http_client,
        }

        self.coingecko = CoinGeckoClient(self.config.coingecko_api_key, **client_opts)
        alchemy = (
            AlchemyClient(self.config.alchemy_api_key, **client_opts)
            if self.config.alchemy_api_key else None
        )
        helius = (
            HeliusClient(self.config.helius_api_key, **client_opts)
            if self.config.helius_api_key else None
        )
        self.envio = (
            EnvioClient(self.config.envio_api_url, **client_opts)
            if self.config.envio_api_url else None
        )

        self.alchemy_provider = AlchemyPriceProvider(alchemy, self.cache)
        self.helius_provider = HeliusPriceProvider(helius, self.cache)
        self.coingecko_base = CoinGeckoPriceProvider(self.coingecko, "base", self.cache)
        self.coingecko_solana = CoinGeckoPriceProvider(self.coingecko, "solana", self.cache)

        self._helius_overrides: dict[str, HeliusPriceProvider] = {}
        self._token_resolver: TokenResolver | None = None
        self._batch: BatchResolver | None = None

    @property
    def base_providers(self) -> list[PriceProvider]:
        return [p for p in (self.alchemy_provider, self.coingecko_base) if p.enabled]

    async def solana_providers(self, helius_api_key: str | None = None) -> list[PriceProvider]:
        helius = await self._helius_provider_for(helius_api_key)
        return [p for p in (helius, self.coingecko_solana) if p.enabled]

    @property
    def indexer(self) -> EnvioClient:
        """The bridge indexer client; raises ConfigurationError when unset."""
        self.config.require_envio()
        return self.envio

    @property
    def token_resolver(self) -> TokenResolver:
        if self._token_resolver is None:
            self.config.require_envio()
            self._token_resolver = TokenResolver(self.envio)
        return self._token_resolver

    @property
    def batch(self) -> BatchResolver:
        if self._batch is None:
            self._batch = BatchResolver(self.coingecko, self.cache, self.config.batch_size)
        return self._batch

    async def _helius_provider_for(self, api_key: str | None) -> HeliusPriceProvider:
        """
        Provider for a per-call Helius key, reusing the configured one when equal.

        At most MAX_HELIUS_OVERRIDES extra keys are kept; the least recently
        used one is closed and dropped to make room.
        """
        if not api_key or api_key == self.config.helius_api_key:
            return self.helius_provider

        provider = self._helius_overrides.pop(api_key, None)
        if provider is None:
            if len(self._helius_overrides) >= MAX_HELIUS_OVERRIDES:
                oldest = next(iter(self._helius_overrides))
                await self._helius_overrides.pop(oldest).aclose()
            client = HeliusClient(
                api_key,
                timeout=self.config.request_timeout,
                max_retries=self.config.max_retries,
                client=self._http_client,
            )
            provider = HeliusPriceProvider(client, self.cache)
        # Reinsert so dict order tracks recency
        self._helius_overrides[api_key] = provider
        return provider

    async def _resolve_chain(
        self,
        chain: str,
        providers: Iterable[PriceProvider],
        address: str,
    ) -> PriceQuote | None:
        """Try providers in order, stopping at the first quote."""
        for provider in providers:
            result = await provider.fetch(address)
            logger.debug(
                "%s %s via %s: %s%s",
                chain, address, provider.name, result.status.value,
                " (cached)" if result.cached else "",
            )
            if result.status is FetchStatus.HIT:
                return result.quote
        return None

    async def resolve_base(self, evm_address: str) -> PriceQuote | None:
        """Base-chain quote for an EVM token address."""
        return await self._resolve_chain("base", self.base_providers, evm_address)

    async def resolve_solana(
        self,
        solana_address: str,
        helius_api_key: str | None = None,
    ) -> PriceQuote | None:
        """Solana-chain quote for a mint given as base58 or bytes32 hex."""
        mint = hex_to_base58(solana_address)
        if mint is None:
            logger.warning("Could not convert Solana address %s to base58", solana_address)
            return None
        return await self._resolve_chain(
            "solana", await self.solana_providers(helius_api_key), mint
        )

    async def resolve_both_chains(
        self,
        evm_address: str | None,
        solana_address: str | None = None,
        helius_api_key: str | None = None,
    ) -> ChainPricePair:
        """
        Get prices for both chains separately (no fallback between them).

        Args:
            evm_address: Base token address
            solana_address: Solana mint (base58 or bytes32 hex), optional
            helius_api_key: Overrides the configured Helius key for this call

        Returns:
            ChainPricePair; the solana side is None without a Solana address
        """
        start = time.monotonic()

        async def _none() -> None:
            return None

        base, solana = await asyncio.gather(
            self.resolve_base(evm_address) if evm_address else _none(),
            self.resolve_solana(solana_address, helius_api_key) if solana_address else _none(),
        )

        logger.debug(
            "Resolved %s / %s in %dms: base=%s solana=%s",
            evm_address, solana_address, (time.monotonic() - start) * 1000,
            base.price_usd if base else None,
            solana.price_usd if solana else None,
        )
        return ChainPricePair(base=base, solana=solana)

    @staticmethod
    def select_price(
        prices: ChainPricePair,
        direction: Direction | str | None = None,
        observed_at: float | None = None,
    ) -> SelectedPrice:
        """
        Pick one price from a per-chain pair.

        The source chain is preferred (Solana for SOURCE_IS_SOLANA, Base
        otherwise) and each field falls back to the other chain on its
        own, so price and market cap may come from different chains.
        """
        if Direction.parse(direction) is Direction.SOURCE_IS_SOLANA:
            order = (prices.solana, prices.base)
        else:
            order = (prices.base, prices.solana)

        return SelectedPrice(
            price_usd=_pick("price_usd", *order),
            market_cap_usd=_pick("market_cap_usd", *order),
            observed_at=observed_at if observed_at is not None else time.time(),
        )

    async def resolve_single(
        self,
        address: str,
        direction: Direction | str | None = None,
    ) -> SelectedPrice:
        """
        Price for a single Base or Solana address.

        The paired address comes from the indexer; both chains are then
        queried and the input's own chain is preferred unless a direction
        is given.

        Raises:
            InvalidAddressError: address matches neither chain's shape
            ConfigurationError: the indexer is not configured
            TokenNotFoundError: the indexer has no record for the token
            UpstreamUnavailableError: the indexer query failed
        """
        kind = classify_address(address)
        self.config.require_envio()

        _, token = await self.token_resolver.lookup(address)
        prices = await self.resolve_both_chains(token.address or None, token.solana_mint_address)

        parsed = Direction.parse(direction)
        if parsed is Direction.NONE:
            parsed = (
                Direction.SOURCE_IS_SOLANA if kind is AddressKind.SOLANA
                else Direction.SOURCE_IS_EVM
            )
        return self.select_price(prices, parsed, observed_at=self.cache.now())

    async def get_price(
        self,
        address: str,
        direction: Direction | str | None = None,
    ) -> dict[str, Any] | None:
        """{priceUSD, marketCapUSD, lastUpdated} for an address, or None if unavailable."""
        selected = await self.resolve_single(address, direction)
        return selected.to_dict() if selected.available else None

    async def get_prices_both_chains(
        self,
        evm_address: str,
        solana_address: str | None = None,
    ) -> ChainPricePair:
        """
        Per-chain prices for a Base token.

        Without a Solana address the indexer is asked for the paired mint;
        a failed lookup only means the Solana side stays empty.
        """
        if not solana_address and self.config.envio_enabled:
            try:
                solana_address = await self.token_resolver.find_solana_mint(evm_address)
            except BridgePriceError as e:
                logger.warning("Could not look up Solana mint for %s: %s", evm_address, e)

        return await self.resolve_both_chains(evm_address, solana_address)

    async def update_prices(
        self,
        tokens: Iterable[AddressPair | dict[str, Any]],
    ) -> dict[str, PriceQuote]:
        """Batch update; see BatchResolver.update_prices."""
        return await self.batch.update_prices(tokens)

    async def aclose(self) -> None:
        """Clean up resources."""
        for provider in (
            self.alchemy_provider,
            self.helius_provider,
            *self._helius_overrides.values(),
        ):
            await provider.aclose()
        await self.coingecko.aclose()
        if self.envio:
            await self.envio.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
