"""Key Provider: key derivation, keystore handling and transaction signing."""

from bnbwallet.signing.base import DerivedKey, KeyProvider
from bnbwallet.signing.local import LocalKeyProvider

__all__ = [
    "DerivedKey",
    "KeyProvider",
    "LocalKeyProvider",
]
