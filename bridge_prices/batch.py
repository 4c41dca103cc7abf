"""Batch price updates for many bridged tokens at once."""

import logging
from collections import defaultdict
from typing import Any, Iterable

from .address import hex_to_base58, normalize_address
from .api.coingecko import MAX_BATCH_SIZE, CoinGeckoClient
from .cache import ABSENT, CacheScope, PriceCache
from .models import AddressPair, PriceQuote
from .providers import parse_coingecko_quote

logger = logging.getLogger(__name__)


def _chunks(items: list[str], size: int) -> Iterable[list[str]]:
    for i in range(0, len(items), size):
        yield items[i:i + size]


class BatchResolver:
    """
    Resolves prices for many tokens with batched CoinGecko calls.

    Base addresses are queried first; tokens still without a price and
    with a Solana mint are retried on the Solana side. A failed batch is
    logged and skipped without affecting the others.
    """

    def __init__(
        self,
        client: CoinGeckoClient,
        cache: PriceCache,
        batch_size: int = MAX_BATCH_SIZE,
    ):
        self.client = client
        self.cache = cache
        self.batch_size = max(1, min(batch_size, MAX_BATCH_SIZE))

    @staticmethod
    def _record(
        results: dict[str, PriceQuote],
        pairs: list[AddressPair],
        quote: PriceQuote,
    ) -> None:
        """Store a quote under every known address of the given tokens."""
        for pair in pairs:
            if pair.evm_address:
                results[normalize_address(pair.evm_address)] = quote
            if pair.solana_address:
                results[normalize_address(pair.solana_address)] = quote

    async def _resolve_chain(
        self,
        chain: str,
        scope: str,
        by_address: dict[str, list[AddressPair]],
        results: dict[str, PriceQuote],
    ) -> None:
        pending: list[str] = []
        for address, pairs in by_address.items():
            cached = self.cache.get(scope, address)
            if cached is ABSENT:
                pending.append(address)
            elif cached is not None:
                self._record(results, pairs, cached)

        if pending:
            logger.debug(
                "Fetching %d %s prices (%d served from cache)",
                len(pending), chain, len(by_address) - len(pending),
            )

        for batch in _chunks(pending, self.batch_size):
            try:
                data = await self.client.get_token_prices(chain, batch)
            except Exception as e:
                logger.warning(
                    "Batch %s price fetch failed for %d tokens: %s", chain, len(batch), e
                )
                continue

            now = self.cache.now()
            for address in batch:
                quote = parse_coingecko_quote(data.get(address.lower()), now)
                self.cache.set(scope, address, quote)
                if quote is not None:
                    self._record(results, by_address[address], quote)

    async def update_prices(
        self,
        tokens: Iterable[AddressPair | dict[str, Any]],
    ) -> dict[str, PriceQuote]:
        """
        Resolve prices for a list of tokens.

        Args:
            tokens: AddressPairs or dicts with baseAddress / solanaAddress

        Returns:
            Mapping of lowercased address (EVM and Solana as supplied) -> quote
        """
        pairs = [t if isinstance(t, AddressPair) else AddressPair.from_dict(t) for t in tokens]
        results: dict[str, PriceQuote] = {}

        evm_addresses: dict[str, list[AddressPair]] = defaultdict(list)
        for pair in pairs:
            if pair.evm_address:
                evm_addresses[normalize_address(pair.evm_address)].append(pair)

        await self._resolve_chain("base", CacheScope.BASE, evm_addresses, results)

        mints: dict[str, list[AddressPair]] = defaultdict(list)
        for pair in pairs:
            if not pair.solana_address:
                continue
            if pair.evm_address and normalize_address(pair.evm_address) in results:
                continue
            mint = hex_to_base58(pair.solana_address)
            if mint is None:
                logger.debug("Skipping unconvertible Solana address %s", pair.solana_address)
                continue
            mints[mint].append(pair)

        await self._resolve_chain("solana", CacheScope.SOLANA, mints, results)

        logger.debug("Batch update resolved %d prices for %d tokens", len(results), len(pairs))
        return results
