"""Wallet session state.

A session holds at most one wallet identity, an optional connection and
the active chain ID. It contains no operation logic: the dispatcher calls
the mutators below after the validator has approved a request, and every
mutator re-checks the invariants it protects.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from bnbwallet.chains import MAINNET_CHAIN_ID
from bnbwallet.errors import InvalidStateError
from bnbwallet.secret import Keyring

logger = logging.getLogger(__name__)


class ImportSource(str, Enum):
    """How the current identity entered the session."""

    NONE = "none"
    MNEMONIC = "mnemonic"
    KEYSTORE = "keystore"
    PRIVATE_KEY = "privateKey"


class SessionState(str, Enum):
    NO_WALLET = "NoWallet"
    HAS_IDENTITY = "HasIdentity"
    CONNECTED = "Connected"


@dataclass(frozen=True)
class WalletIdentity:
    """Public identity of the session's wallet."""

    address: str
    source: ImportSource


@dataclass(frozen=True)
class ChainConnection:
    """A successful connectWallet against one chain."""

    chain_id: int
    connected_at: datetime


class WalletSession:
    """Session-scoped aggregate: identity, connection and active chain."""

    def __init__(self, active_chain_id: int = MAINNET_CHAIN_ID):
        self._identity: Optional[WalletIdentity] = None
        self._keyring: Optional[Keyring] = None
        self._connection: Optional[ChainConnection] = None
        self._active_chain_id = active_chain_id

    @property
    def identity(self) -> Optional[WalletIdentity]:
        return self._identity

    @property
    def keyring(self) -> Optional[Keyring]:
        return self._keyring

    @property
    def connection(self) -> Optional[ChainConnection]:
        return self._connection

    @property
    def active_chain_id(self) -> int:
        return self._active_chain_id

    @property
    def has_identity(self) -> bool:
        return self._identity is not None

    @property
    def is_connected(self) -> bool:
        """True only when connected to the currently active chain."""
        return (
            self._connection is not None
            and self._connection.chain_id == self._active_chain_id
        )

    @property
    def connection_is_stale(self) -> bool:
        """Connected, but to a chain other than the active one."""
        return self._connection is not None and not self.is_connected

    @property
    def state(self) -> SessionState:
        if self._identity is None:
            return SessionState.NO_WALLET
        if not self.is_connected:
            # No connection, or a stale one left behind by switchChain
            return SessionState.HAS_IDENTITY
        return SessionState.CONNECTED

    def set_identity(self, identity: WalletIdentity, keyring: Keyring) -> None:
        """Install a new wallet, replacing (and wiping) any previous one.

        A connection belongs to the wallet that made it, so replacing the
        identity drops the connection too.
        """
        if self._keyring is not None and self._keyring is not keyring:
            self._keyring.wipe()
        self._identity = identity
        self._keyring = keyring
        self._connection = None
        logger.debug("Identity set: %s (%s)", identity.address[:10] + "...", identity.source.value)

    def clear_identity(self) -> None:
        """Forget the wallet and any connection made with it."""
        if self._keyring is not None:
            self._keyring.wipe()
        self._identity = None
        self._keyring = None
        self._connection = None

    def set_connection(self, chain_id: int, connected_at: Optional[datetime] = None) -> ChainConnection:
        """Record a connection; requires an identity."""
        if self._identity is None:
            raise InvalidStateError("identity required to connect")
        connection = ChainConnection(
            chain_id=chain_id,
            connected_at=connected_at or datetime.now(timezone.utc),
        )
        self._connection = connection
        return connection

    def clear_connection(self) -> None:
        self._connection = None

    def set_active_chain(self, chain_id: int) -> None:
        """Change the active chain; the connection is left as is."""
        if chain_id <= 0:
            raise InvalidStateError(f"invalid chain id {chain_id}")
        self._active_chain_id = chain_id

    def snapshot(self) -> dict:
        """Public view of the session (no secrets)."""
        return {
            "state": self.state.value,
            "address": self._identity.address if self._identity else None,
            "source": self._identity.source.value if self._identity else ImportSource.NONE.value,
            "activeChainId": self._active_chain_id,
            "connection": (
                {
                    "chainId": self._connection.chain_id,
                    "connectedAt": self._connection.connected_at.isoformat(),
                    "stale": self.connection_is_stale,
                }
                if self._connection
                else None
            ),
        }
