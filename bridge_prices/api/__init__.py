"""API clients for external services."""

from .alchemy import AlchemyClient
from .base import APIError, BaseAPIClient, RateLimitError
from .coingecko import CoinGeckoClient
from .envio import EnvioClient
from .helius import HeliusClient

__all__ = [
    "AlchemyClient",
    "APIError",
    "BaseAPIClient",
    "CoinGeckoClient",
    "EnvioClient",
    "HeliusClient",
    "RateLimitError",
]
