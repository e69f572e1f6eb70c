"""In-memory Chain Client for dry-run mode.

Balances start at zero and can be credited explicitly. A broadcast debits
the sender by the amount of the transfer it was built for, bumps the
sender's nonce and is recorded with a deterministic keccak hash. Nothing
leaves the process.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional

from eth_account import Account
from eth_utils import keccak, to_checksum_address

from bnbwallet.chain.base import ChainClient, TokenBalance
from bnbwallet.chain.rpc import to_base_units
from bnbwallet.chains import CHAINS
from bnbwallet.errors import BroadcastError, InsufficientFundsError

logger = logging.getLogger(__name__)


@dataclass
class SimulatedBroadcast:
    """A transaction accepted by the simulated chain."""

    chain_id: int
    tx_hash: str
    raw: bytes


@dataclass(frozen=True)
class _PendingTransfer:
    recipient: str
    amount: Decimal
    token_address: Optional[str] = None


@dataclass
class SimulatedChainClient(ChainClient):
    """Chain client backed by dictionaries."""

    supported_chains: set[int] = field(default_factory=lambda: set(CHAINS))
    unreachable_chains: set[int] = field(default_factory=set)
    native_balances: dict[tuple[int, str], Decimal] = field(default_factory=dict)
    token_balances: dict[tuple[int, str, str], Decimal] = field(default_factory=dict)
    token_symbols: dict[str, str] = field(default_factory=dict)
    broadcasts: list[SimulatedBroadcast] = field(default_factory=list)
    _nonces: dict[tuple[int, str], int] = field(default_factory=dict)
    # Last transfer built per (chain, sender), settled by the next broadcast
    _pending: dict[tuple[int, str], _PendingTransfer] = field(default_factory=dict)

    @staticmethod
    def _key(address: str) -> str:
        return address.lower()

    def credit(self, address: str, amount: Decimal, chain_id: int) -> None:
        """Add native balance (test / demo helper)."""
        key = (chain_id, self._key(address))
        self.native_balances[key] = self.native_balances.get(key, Decimal("0")) + amount

    def credit_token(
        self,
        address: str,
        token_address: str,
        amount: Decimal,
        chain_id: int,
        symbol: str = "TOKEN",
    ) -> None:
        """Add token balance (test / demo helper)."""
        key = (chain_id, self._key(token_address), self._key(address))
        self.token_balances[key] = self.token_balances.get(key, Decimal("0")) + amount
        self.token_symbols[self._key(token_address)] = symbol

    async def list_supported_chains(self) -> set[int]:
        return set(self.supported_chains)

    async def is_reachable(self, chain_id: int) -> bool:
        return chain_id in self.supported_chains and chain_id not in self.unreachable_chains

    async def get_native_balance(self, address: str, chain_id: int) -> Decimal:
        return self.native_balances.get((chain_id, self._key(address)), Decimal("0"))

    async def get_token_balance(
        self, address: str, token_address: str, chain_id: int
    ) -> TokenBalance:
        key = (chain_id, self._key(token_address), self._key(address))
        return TokenBalance(
            balance=self.token_balances.get(key, Decimal("0")),
            symbol=self.token_symbols.get(self._key(token_address), "TOKEN"),
        )

    async def build_transfer(
        self,
        sender: str,
        recipient: str,
        amount: Decimal,
        chain_id: int,
        token_address: Optional[str] = None,
    ) -> dict[str, Any]:
        sender_key = (chain_id, self._key(sender))
        # Like a node's pending nonce: only broadcasts consume it
        nonce = self._nonces.get(sender_key, 0)
        self._pending[sender_key] = _PendingTransfer(
            recipient=recipient,
            amount=amount,
            token_address=token_address,
        )

        tx: dict[str, Any] = {
            "nonce": nonce,
            "gasPrice": 3 * 10**9,
            "chainId": chain_id,
        }
        if token_address is None:
            tx.update({
                "gas": 21000,
                "to": to_checksum_address(recipient),
                "value": to_base_units(amount, 18),
                "data": "0x",
            })
        else:
            # transfer(address,uint256)
            calldata = (
                "0xa9059cbb"
                + recipient.lower().removeprefix("0x").rjust(64, "0")
                + format(to_base_units(amount, 18), "x").rjust(64, "0")
            )
            tx.update({
                "gas": 100000,
                "to": to_checksum_address(token_address),
                "value": 0,
                "data": calldata,
            })
        return tx

    def _settle(self, sender: str, transfer: _PendingTransfer, chain_id: int) -> None:
        """Move funds for a broadcast transfer, or refuse it like a node would."""
        if transfer.token_address is None:
            debit_key = (chain_id, self._key(sender))
            credit_key = (chain_id, self._key(transfer.recipient))
            balances = self.native_balances
        else:
            token = self._key(transfer.token_address)
            debit_key = (chain_id, token, self._key(sender))
            credit_key = (chain_id, token, self._key(transfer.recipient))
            balances = self.token_balances

        available = balances.get(debit_key, Decimal("0"))
        if available < transfer.amount:
            raise InsufficientFundsError(
                f"node rejected transaction: insufficient funds ({available} < {transfer.amount})"
            )
        balances[debit_key] = available - transfer.amount
        balances[credit_key] = balances.get(credit_key, Decimal("0")) + transfer.amount

    async def broadcast(self, signed_tx: bytes, chain_id: int) -> str:
        try:
            sender = Account.recover_transaction(signed_tx)
        except Exception as e:
            raise BroadcastError(f"node rejected transaction: {e}") from e

        sender_key = (chain_id, self._key(sender))
        transfer = self._pending.pop(sender_key, None)
        if transfer is not None:
            self._settle(sender, transfer, chain_id)
        self._nonces[sender_key] = self._nonces.get(sender_key, 0) + 1

        tx_hash = "0x" + keccak(signed_tx).hex()
        self.broadcasts.append(SimulatedBroadcast(chain_id=chain_id, tx_hash=tx_hash, raw=signed_tx))
        logger.info("[SIMULATED] Broadcast %s on chain %d", tx_hash[:18] + "...", chain_id)
        return tx_hash
