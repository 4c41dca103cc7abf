from __future__ import annotations

import json
from typing import Callable

import base58
import httpx
import pytest

from bridge_prices.cache import PriceCache
from bridge_prices.config import Config
from bridge_prices.models import FetchResult, PriceQuote


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubProvider:
    """Provider stand-in that answers from a dict and records calls."""

    def __init__(self, name: str, quotes: dict[str, PriceQuote] | None = None, enabled: bool = True):
        self.name = name
        self.enabled = enabled
        self.quotes = quotes or {}
        self.calls: list[str] = []

    async def fetch(self, address: str) -> FetchResult:
        self.calls.append(address)
        quote = self.quotes.get(address)
        return FetchResult.hit(quote) if quote else FetchResult.miss()

    async def aclose(self) -> None:
        pass


def make_mint(seed: int = 1) -> tuple[str, str]:
    """Deterministic (base58, bytes32 hex) pair for a Solana mint."""
    raw = bytes((seed + i) % 256 for i in range(32))
    return base58.b58encode(raw).decode(), "0x" + raw.hex()


def mock_http_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def json_body(request: httpx.Request) -> dict:
    return json.loads(request.content.decode() or "{}")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> PriceCache:
    return PriceCache(clock=clock)


@pytest.fixture
def config() -> Config:
    return Config(
        alchemy_api_key="alchemy-key",
        coingecko_api_key=None,
        helius_api_key="helius-key",
        envio_api_url="https://indexer.example/v1/graphql",
        request_timeout=5.0,
        max_retries=1,
    )


EVM_TOKEN = "0x1111111111111111111111111111111111111111"
