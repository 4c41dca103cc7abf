"""Error types surfaced to callers of the price layer."""


class BridgePriceError(Exception):
    """Base class for all bridge price errors."""
    pass


class ConfigurationError(BridgePriceError):
    """Raised when a required API key or indexer URL is not configured."""
    pass


class InvalidAddressError(BridgePriceError):
    """Raised when an address is neither EVM- nor Solana-shaped."""

    def __init__(self, address: str, message: str | None = None):
        super().__init__(
            message
            or f"Invalid address format: {address!r}. "
            "Must be a Base (hex) or Solana (base58) address"
        )
        self.address = address


class TokenNotFoundError(BridgePriceError):
    """Raised when the indexer has no record for a token."""

    def __init__(self, address: str):
        super().__init__(f"Token not found: {address}")
        self.address = address


class UpstreamUnavailableError(BridgePriceError):
    """Raised when an upstream service fails (network, non-2xx, bad payload)."""

    def __init__(self, message: str, retryable: bool = True):
        super().__init__(message)
        self.retryable = retryable
