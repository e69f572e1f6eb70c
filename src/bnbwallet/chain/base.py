"""Base interface for the Chain Client.

Transfer flow:
1. Core validates recipient and amount
2. Chain client builds the unsigned transaction (nonce, gas, calldata)
3. Key provider signs it
4. Chain client broadcasts the raw bytes and returns the tx hash
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional


@dataclass(frozen=True)
class TokenBalance:
    """BEP20 balance in whole-token units."""

    balance: Decimal
    symbol: str
    decimals: int = 18


class ChainClientError(Exception):
    """A chain client call failed for a reason not otherwise classified."""


class TransientChainError(ChainClientError):
    """Network hiccup worth retrying for read-only calls."""


class ChainClient(ABC):
    """Abstract Chain Client scoped by numeric chain ID."""

    @abstractmethod
    async def list_supported_chains(self) -> set[int]:
        """Chain IDs this client can talk to."""
        pass

    @abstractmethod
    async def is_reachable(self, chain_id: int) -> bool:
        """Whether the chain's endpoint answers and reports ``chain_id``."""
        pass

    @abstractmethod
    async def get_native_balance(self, address: str, chain_id: int) -> Decimal:
        """BNB balance of ``address`` in whole units."""
        pass

    @abstractmethod
    async def get_token_balance(
        self, address: str, token_address: str, chain_id: int
    ) -> TokenBalance:
        """BEP20 balance of ``address``."""
        pass

    @abstractmethod
    async def build_transfer(
        self,
        sender: str,
        recipient: str,
        amount: Decimal,
        chain_id: int,
        token_address: Optional[str] = None,
    ) -> dict[str, Any]:
        """Build unsigned transaction parameters for a native or token transfer.

        Raises:
            InvalidFormatError: If ``amount`` has more decimals than the asset
        """
        pass

    @abstractmethod
    async def broadcast(self, signed_tx: bytes, chain_id: int) -> str:
        """Submit a signed transaction and return its hash.

        Raises:
            BroadcastError: Node rejected the transaction, or the outcome is unknown
            InsufficientFundsError: Node rejected for lack of funds
        """
        pass
