"""In-memory TTL cache for provider price lookups."""

import time
from typing import Callable

from .address import normalize_address
from .models import PriceQuote

CACHE_TTL = 60.0  # seconds


class _Absent:
    """Sentinel for 'no usable entry' (distinct from a cached miss)."""

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False


ABSENT = _Absent()


class CacheScope:
    """Cache namespaces, one per provider + chain combination."""
    BASE_ALCHEMY = "base-alchemy"
    BASE = "base"
    SOLANA = "solana"
    SOLANA_HELIUS = "solana-helius"


class PriceCache:
    """
    Time-bounded store of provider results keyed by (scope, address).

    A stored None is a negative result: the provider was asked and had no
    price. get() returns ABSENT when there is no entry or it has expired.
    """

    def __init__(self, ttl: float = CACHE_TTL, clock: Callable[[], float] = time.time):
        self.ttl = ttl
        self._clock = clock
        self._store: dict[tuple[str, str], tuple[PriceQuote | None, float]] = {}

    @staticmethod
    def _key(scope: str, address: str) -> tuple[str, str]:
        return scope, normalize_address(address)

    def get(self, scope: str, address: str) -> PriceQuote | None | _Absent:
        key = self._key(scope, address)
        entry = self._store.get(key)
        if entry is None:
            return ABSENT

        quote, stored_at = entry
        if self._clock() - stored_at >= self.ttl:
            del self._store[key]
            return ABSENT
        return quote

    def set(self, scope: str, address: str, quote: PriceQuote | None) -> None:
        self._store[self._key(scope, address)] = (quote, self._clock())

    def now(self) -> float:
        return self._clock()

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: tuple[str, str]) -> bool:
        return self.get(*key) is not ABSENT
