"""Base interface for the Key Provider.

The wallet core never touches curve math or KDFs directly. It hands
secret material to a ``KeyProvider`` and gets back addresses, keys,
keystore JSON or signed transaction bytes.

Derivation flow:
1. Caller supplies (or asks for) secret material
2. Provider derives the private key and checksummed address
3. Core stores the result in the session keyring
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, repr=False)
class DerivedKey:
    """Result of a derivation.

    Attributes:
        address: Checksummed 0x address
        private_key: 0x-prefixed 32-byte hex key
    """

    address: str
    private_key: str

    def __repr__(self) -> str:
        return f"DerivedKey(address={self.address!r}, private_key=***)"


class KeyProvider(ABC):
    """Abstract Key Provider.

    Implementations raise ``KeyDerivationError`` for any secret they cannot
    turn into a key (bad word, checksum mismatch, wrong keystore password,
    out-of-range private key).
    """

    @abstractmethod
    async def generate_mnemonic(self) -> str:
        """Generate a fresh BIP-39 phrase."""
        pass

    @abstractmethod
    async def derive_from_mnemonic(self, phrase: str) -> DerivedKey:
        """Derive the first account (m/44'/60'/0'/0/0) from a phrase."""
        pass

    @abstractmethod
    async def derive_from_private_key(self, private_key: str) -> str:
        """Return the address controlled by ``private_key``."""
        pass

    @abstractmethod
    async def decrypt_keystore(self, keystore_json: str, password: str) -> DerivedKey:
        """Open a V3 keystore."""
        pass

    @abstractmethod
    async def encrypt_to_keystore(self, private_key: str, password: str) -> str:
        """Encrypt ``private_key`` into V3 keystore JSON."""
        pass

    @abstractmethod
    async def sign(self, private_key: str, tx_params: dict[str, Any]) -> bytes:
        """Sign a transaction dict and return the raw signed bytes."""
        pass
