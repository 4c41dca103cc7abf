"""Bridge Prices - USD prices for tokens bridged between Base and Solana."""

from .address import base58_to_bytes32, hex_to_base58, is_base58_address
from .cache import PriceCache
from .errors import (
    BridgePriceError,
    ConfigurationError,
    InvalidAddressError,
    TokenNotFoundError,
    UpstreamUnavailableError,
)
from .models import AddressPair, ChainPricePair, Direction, PriceQuote, SelectedPrice
from .resolver import PriceResolver

__all__ = [
    "base58_to_bytes32",
    "hex_to_base58",
    "is_base58_address",
    "PriceCache",
    "PriceResolver",
    "AddressPair",
    "ChainPricePair",
    "Direction",
    "PriceQuote",
    "SelectedPrice",
    "BridgePriceError",
    "ConfigurationError",
    "InvalidAddressError",
    "TokenNotFoundError",
    "UpstreamUnavailableError",
]

__version__ = "0.1.0"
