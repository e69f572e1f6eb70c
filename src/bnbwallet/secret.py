"""Secret material held or passed through a wallet session.

Mnemonics, private keys and keystore passwords are wrapped in
``SensitiveValue`` so they never end up in a log line, a ``repr`` or a
generic error message. The backing buffer is a ``bytearray`` that is
zeroed by ``wipe()``; strings obtained from ``reveal()`` are ordinary
Python strings and cannot be scrubbed, so callers keep them local to the
collaborator call that needs them.
"""

import hmac
from dataclasses import dataclass
from typing import Optional, Union

REDACTED = "***"


class SensitiveValue:
    """A secret string that redacts itself and can be zeroed."""

    __slots__ = ("_buffer", "_wiped")

    def __init__(self, value: str):
        self._buffer = bytearray(value.encode("utf-8"))
        self._wiped = False

    def reveal(self) -> str:
        """Return the plaintext secret.

        Raises:
            ValueError: If the value has already been wiped
        """
        if self._wiped:
            raise ValueError("Sensitive value has been wiped")
        return self._buffer.decode("utf-8")

    def wipe(self) -> None:
        """Overwrite the backing buffer with zeros."""
        for i in range(len(self._buffer)):
            self._buffer[i] = 0
        self._buffer = bytearray()
        self._wiped = True

    @property
    def wiped(self) -> bool:
        return self._wiped

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SensitiveValue):
            return NotImplemented
        return hmac.compare_digest(bytes(self._buffer), bytes(other._buffer))

    def __hash__(self) -> int:
        return id(self)

    def __repr__(self) -> str:
        return f"SensitiveValue('{REDACTED}')"

    def __str__(self) -> str:
        return REDACTED

    def __reduce__(self):
        raise TypeError("SensitiveValue cannot be pickled")


@dataclass(frozen=True, repr=False)
class MnemonicSecret:
    """BIP-39 phrase."""

    phrase: SensitiveValue

    def wipe(self) -> None:
        self.phrase.wipe()

    def __repr__(self) -> str:
        return f"MnemonicSecret({REDACTED})"


@dataclass(frozen=True, repr=False)
class PrivateKeySecret:
    """Hex private key, normalized to ``0x`` + 64 lowercase hex chars."""

    key: SensitiveValue

    def wipe(self) -> None:
        self.key.wipe()

    def __repr__(self) -> str:
        return f"PrivateKeySecret({REDACTED})"


@dataclass(frozen=True, repr=False)
class KeystoreSecret:
    """Encrypted JSON keystore plus the password that opens it."""

    keystore_json: SensitiveValue
    password: SensitiveValue

    def wipe(self) -> None:
        self.keystore_json.wipe()
        self.password.wipe()

    def __repr__(self) -> str:
        return f"KeystoreSecret({REDACTED})"


SecretMaterial = Union[MnemonicSecret, PrivateKeySecret, KeystoreSecret]


@dataclass(repr=False)
class Keyring:
    """Secrets backing the session's current identity.

    ``mnemonic`` is only present when the wallet was created or imported
    from a phrase; it is what makes a mnemonic export possible.
    """

    private_key: SensitiveValue
    mnemonic: Optional[SensitiveValue] = None

    @property
    def has_mnemonic(self) -> bool:
        return self.mnemonic is not None

    def wipe(self) -> None:
        self.private_key.wipe()
        if self.mnemonic is not None:
            self.mnemonic.wipe()

    def __repr__(self) -> str:
        return f"Keyring(private_key={REDACTED}, has_mnemonic={self.has_mnemonic})"
