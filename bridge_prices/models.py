"""Data models for the bridge price layer."""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import InvalidAddressError


@dataclass(frozen=True)
class PriceQuote:
    """A USD price (and optional market cap) reported by one provider."""
    price_usd: float
    market_cap_usd: float | None = None
    observed_at: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        """Wire shape used by the dashboard (lastUpdated in milliseconds)."""
        return {
            "priceUSD": self.price_usd,
            "marketCapUSD": self.market_cap_usd,
            "lastUpdated": int(self.observed_at * 1000),
        }


@dataclass(frozen=True)
class SelectedPrice:
    """A single preferred price assembled field by field from both chains."""
    price_usd: float | None
    market_cap_usd: float | None
    observed_at: float = field(default_factory=time.time)

    @property
    def available(self) -> bool:
        return self.price_usd is not None or self.market_cap_usd is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "priceUSD": self.price_usd,
            "marketCapUSD": self.market_cap_usd,
            "lastUpdated": int(self.observed_at * 1000),
        }


@dataclass(frozen=True)
class ChainPricePair:
    """Independent per-chain quotes; neither side borrows from the other."""
    base: PriceQuote | None = None
    solana: PriceQuote | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "base": self.base.to_dict() if self.base else None,
            "solana": self.solana.to_dict() if self.solana else None,
        }


@dataclass(frozen=True)
class AddressPair:
    """A token's EVM address and/or Solana mint (base58 or bytes32 hex)."""
    evm_address: str | None = None
    solana_address: str | None = None

    def __post_init__(self):
        if not self.evm_address and not self.solana_address:
            raise InvalidAddressError("", "AddressPair needs an EVM or a Solana address")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AddressPair":
        """Accept both the dashboard's and the snake_case key names."""
        return cls(
            evm_address=(
                data.get("evm_address")
                or data.get("baseAddress")
                or data.get("address")
            ),
            solana_address=data.get("solana_address") or data.get("solanaAddress"),
        )


class Direction(str, Enum):
    """Which chain a bridge transfer originated on."""
    SOURCE_IS_SOLANA = "solana-to-base"
    SOURCE_IS_EVM = "base-to-solana"
    NONE = "none"

    @classmethod
    def parse(cls, value: "str | Direction | None") -> "Direction":
        """Parse dashboard or indexer spellings; unknown values map to NONE."""
        if value is None:
            return cls.NONE
        if isinstance(value, Direction):
            return value
        normalized = value.strip().lower().replace("_", "-")
        if normalized in ("solana-to-base", "source-is-solana"):
            return cls.SOURCE_IS_SOLANA
        if normalized in ("base-to-solana", "source-is-evm"):
            return cls.SOURCE_IS_EVM
        return cls.NONE

    def to_indexer(self) -> str | None:
        """Indexer enum value (SOLANA_TO_BASE / BASE_TO_SOLANA)."""
        if self is Direction.SOURCE_IS_SOLANA:
            return "SOLANA_TO_BASE"
        if self is Direction.SOURCE_IS_EVM:
            return "BASE_TO_SOLANA"
        return None


class FetchStatus(str, Enum):
    HIT = "hit"
    MISS = "miss"      # provider answered, no price for this token
    ERROR = "error"    # provider failed


@dataclass(frozen=True)
class FetchResult:
    """Outcome of one provider lookup, before it is collapsed to a quote."""
    status: FetchStatus
    quote: PriceQuote | None = None
    error: str | None = None
    cached: bool = False

    @classmethod
    def hit(cls, quote: PriceQuote, cached: bool = False) -> "FetchResult":
        return cls(FetchStatus.HIT, quote=quote, cached=cached)

    @classmethod
    def miss(cls, cached: bool = False) -> "FetchResult":
        return cls(FetchStatus.MISS, cached=cached)

    @classmethod
    def failed(cls, error: str) -> "FetchResult":
        return cls(FetchStatus.ERROR, error=error)


def _to_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass
class TokenRecord:
    """A bridged token as aggregated by the indexer."""
    address: str
    solana_mint_address: str | None = None
    name: str | None = None
    symbol: str | None = None
    decimals: int | None = None
    total_bridged_to_solana: int = 0
    total_bridged_from_solana: int = 0
    bridge_count_to_solana: int = 0
    bridge_count_from_solana: int = 0
    last_bridge_time: int | None = None
    market_cap_usd: float | None = None
    price_usd: float | None = None

    @classmethod
    def from_envio(cls, data: dict[str, Any]) -> "TokenRecord":
        """Create TokenRecord from an indexer `Token` row."""
        last_bridge = data.get("lastBridgeTime")
        return cls(
            address=data.get("address", ""),
            solana_mint_address=data.get("solanaMintAddress") or None,
            name=data.get("name"),
            symbol=data.get("symbol"),
            decimals=data.get("decimals"),
            total_bridged_to_solana=int(data.get("totalBridgedToSolana") or 0),
            total_bridged_from_solana=int(data.get("totalBridgedFromSolana") or 0),
            bridge_count_to_solana=int(data.get("bridgeCountToSolana") or 0),
            bridge_count_from_solana=int(data.get("bridgeCountFromSolana") or 0),
            last_bridge_time=int(last_bridge) if last_bridge else None,
            market_cap_usd=_to_float(data.get("marketCapUSD")),
            price_usd=_to_float(data.get("priceUSD")),
        )

    @property
    def address_pair(self) -> AddressPair:
        return AddressPair(self.address or None, self.solana_mint_address)


@dataclass
class BridgeTransaction:
    """A single bridge transfer emitted by the indexer."""
    id: str
    transaction_hash: str
    block_timestamp: int
    token_address: str
    direction: Direction
    amount: int
    from_address: str
    to_address: str
    token_name: str | None = None
    token_symbol: str | None = None
    decimals: int | None = None
    amount_formatted: str | None = None

    @classmethod
    def from_envio(cls, data: dict[str, Any]) -> "BridgeTransaction":
        """Create BridgeTransaction from an indexer `BridgeTransaction` row."""
        return cls(
            id=data.get("id", ""),
            transaction_hash=data.get("transactionHash", ""),
            block_timestamp=int(data.get("blockTimestamp") or 0),
            token_address=data.get("tokenAddress", ""),
            direction=Direction.parse(data.get("direction")),
            amount=int(data.get("amount") or 0),
            from_address=data.get("fromAddress", ""),
            to_address=data.get("toAddress", ""),
            token_name=data.get("tokenName"),
            token_symbol=data.get("tokenSymbol"),
            decimals=data.get("decimals"),
            amount_formatted=data.get("amountFormatted"),
        )

    def formatted_amount(self) -> str:
        """Human-readable amount; decimals default to 18 when unknown."""
        if self.amount_formatted:
            return self.amount_formatted
        decimals = self.decimals if self.decimals is not None else 18
        return str(self.amount / (10 ** decimals))


@dataclass
class Pagination:
    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        total_pages = -(-total // limit) if limit > 0 else 0
        return cls(page=page, limit=limit, total=total, total_pages=total_pages)


@dataclass
class TransactionPage:
    """One page of bridge transactions, optionally with the token record."""
    data: list[BridgeTransaction]
    pagination: Pagination
    token: TokenRecord | None = None
