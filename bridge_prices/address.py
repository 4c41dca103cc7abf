"""Conversion between EVM bytes32 hex and Solana base58 addresses."""

import logging
import re
from enum import Enum

import base58

from .errors import InvalidAddressError

logger = logging.getLogger(__name__)

SOLANA_ADDRESS_BYTES = 32

_EVM_RE = re.compile(r"^(0x)?[0-9a-fA-F]{40}$")
_BYTES32_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")


class AddressKind(str, Enum):
    EVM = "evm"
    SOLANA = "solana"


def _strip_0x(value: str) -> str:
    return value[2:] if value[:2].lower() == "0x" else value


def is_base58_address(value: str) -> bool:
    """Check if a string is a base58-encoded 32-byte Solana address."""
    if not isinstance(value, str) or not 32 <= len(value) <= 44:
        return False
    try:
        decoded = base58.b58decode(value)
    except ValueError:
        return False
    return len(decoded) == SOLANA_ADDRESS_BYTES


def is_evm_address(value: str) -> bool:
    """Check if a string is a 20-byte hex address (0x prefix optional)."""
    return isinstance(value, str) and bool(_EVM_RE.match(value))


def hex_to_base58(value: str) -> str | None:
    """
    Convert a bytes32 hex string to a Solana base58 address.

    Values that are already valid base58 addresses are returned unchanged.
    Hex longer than 32 bytes keeps its last 32 bytes; shorter hex is
    zero-padded at the front.

    Args:
        value: Hex string (with or without 0x prefix) or base58 address

    Returns:
        Base58 address, or None if the value cannot be decoded
    """
    if is_base58_address(value):
        return value

    try:
        hex_str = _strip_0x(value)
        if len(hex_str) % 2:
            hex_str = "0" + hex_str
        raw = bytes.fromhex(hex_str)
    except (TypeError, ValueError, AttributeError) as e:
        logger.debug("Cannot convert %r to base58: %s", value, e)
        return None

    if len(raw) > SOLANA_ADDRESS_BYTES:
        raw = raw[-SOLANA_ADDRESS_BYTES:]
    elif len(raw) < SOLANA_ADDRESS_BYTES:
        raw = raw.rjust(SOLANA_ADDRESS_BYTES, b"\x00")

    return base58.b58encode(raw).decode("ascii")


def base58_to_bytes32(value: str) -> str | None:
    """Convert a base58 Solana address to a 0x-prefixed 64-char hex string."""
    try:
        raw = base58.b58decode(value)
    except (TypeError, ValueError) as e:
        logger.debug("Cannot decode %r as base58: %s", value, e)
        return None

    if len(raw) != SOLANA_ADDRESS_BYTES:
        logger.debug(
            "Solana address length is %d, expected %d", len(raw), SOLANA_ADDRESS_BYTES
        )
        return None

    return "0x" + raw.hex().rjust(64, "0")


def classify_address(value: str) -> AddressKind:
    """
    Decide which chain an address belongs to.

    Base58 addresses and 0x-prefixed bytes32 values are Solana mints;
    20-byte hex values are EVM addresses. Treating bytes32 hex as Solana
    goes beyond a base58-only check, which would send every 0x value to Base.

    Raises:
        InvalidAddressError: if the value matches neither shape
    """
    value = (value or "").strip()
    if is_base58_address(value) or _BYTES32_RE.match(value):
        return AddressKind.SOLANA
    if is_evm_address(value):
        return AddressKind.EVM
    raise InvalidAddressError(value)


def normalize_address(value: str) -> str:
    """Cache/lookup key form of an address."""
    return value.strip().lower()
