"""Token resolution - pair a Base address with its Solana mint via the indexer."""

import logging

from .address import AddressKind, classify_address
from .api.envio import EnvioClient
from .errors import TokenNotFoundError
from .models import AddressPair, TokenRecord

logger = logging.getLogger(__name__)


class TokenResolver:
    """
    Resolves either side of a bridged token to the full address pair.

    Uses the indexer's Token entity, which stores the Base address
    together with the Solana mint it is bridged to.
    """

    def __init__(self, envio: EnvioClient):
        self.envio = envio

    async def lookup(self, address: str) -> tuple[AddressKind, TokenRecord]:
        """
        Find the indexer record for a Base or Solana address.

        Args:
            address: EVM address, base58 mint or bytes32 hex mint

        Returns:
            The input's address kind and the token record

        Raises:
            InvalidAddressError: if the address matches neither shape
            TokenNotFoundError: if the indexer has no record
        """
        kind = classify_address(address)

        if kind is AddressKind.SOLANA:
            token = await self.envio.get_token_by_solana_mint(address.strip())
        else:
            token = await self.envio.get_token(address.strip())

        if token is None:
            logger.info("Token not found in indexer: %s", address)
            raise TokenNotFoundError(address)

        return kind, token

    async def resolve_pair(self, address: str) -> AddressPair:
        """Resolve an address to its (EVM, Solana) pair."""
        _, token = await self.lookup(address)
        return token.address_pair

    async def find_solana_mint(self, evm_address: str) -> str | None:
        """
        Get the Solana mint paired with a Base token.

        Returns:
            The mint as stored by the indexer, or None if unknown
        """
        token = await self.envio.get_token(evm_address)
        if token is None:
            return None
        return token.solana_mint_address
