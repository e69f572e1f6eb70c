"""Local Key Provider.

Derives keys in-process with bip_utils (BIP-39 / BIP-44) and uses
eth_account for keystore encryption and transaction signing. CPU-heavy
work (PBKDF2 seed stretching, scrypt) runs in a worker thread so the
event loop stays responsive.

WARNING: Private keys live in process memory for the session lifetime.
"""

import asyncio
import json
import logging
from typing import Any, Optional

from bip_utils import (
    Bip39MnemonicGenerator,
    Bip39MnemonicValidator,
    Bip39SeedGenerator,
    Bip39WordsNum,
    Bip44,
    Bip44Changes,
    Bip44Coins,
)
from eth_account import Account

from bnbwallet.chains import DERIVATION_PATH
from bnbwallet.errors import KeyDerivationError
from bnbwallet.signing.base import DerivedKey, KeyProvider

logger = logging.getLogger(__name__)


def _normalize_key_hex(raw: str) -> str:
    return "0x" + raw.lower().removeprefix("0x")


class LocalKeyProvider(KeyProvider):
    """In-process Key Provider.

    Example:
        provider = LocalKeyProvider()
        phrase = await provider.generate_mnemonic()
        key = await provider.derive_from_mnemonic(phrase)
        # DerivedKey(address="0x...", private_key=***)
    """

    def __init__(
        self,
        words_num: Bip39WordsNum = Bip39WordsNum.WORDS_NUM_12,
        keystore_kdf: str = "scrypt",
        keystore_iterations: Optional[int] = None,
        account_index: int = 0,
    ):
        """Initialize provider.

        Args:
            words_num: Length of generated mnemonics
            keystore_kdf: "scrypt" or "pbkdf2" for keystore export
            keystore_iterations: KDF work factor (None = eth_account default)
            account_index: BIP44 address index to derive
        """
        self._words_num = words_num
        self._keystore_kdf = keystore_kdf
        self._keystore_iterations = keystore_iterations
        self._account_index = account_index

    async def generate_mnemonic(self) -> str:
        mnemonic = Bip39MnemonicGenerator().FromWordsNumber(self._words_num)
        return mnemonic.ToStr()

    async def derive_from_mnemonic(self, phrase: str) -> DerivedKey:
        return await asyncio.to_thread(self._derive_from_mnemonic, phrase)

    def _derive_from_mnemonic(self, phrase: str) -> DerivedKey:
        phrase = " ".join(phrase.split())
        if not Bip39MnemonicValidator().IsValid(phrase):
            raise KeyDerivationError("invalid mnemonic: unknown word or checksum mismatch")

        seed = Bip39SeedGenerator(phrase).Generate()
        bip44 = Bip44.FromSeed(seed, Bip44Coins.ETHEREUM)
        account = bip44.Purpose().Coin().Account(0).Change(Bip44Changes.CHAIN_EXT)
        child = account.AddressIndex(self._account_index)
        address = child.PublicKey().ToAddress()
        logger.debug(
            "Derived %s at %s",
            address[:10] + "...",
            DERIVATION_PATH.format(index=self._account_index),
        )

        return DerivedKey(
            address=address,
            private_key=_normalize_key_hex(child.PrivateKey().Raw().ToHex()),
        )

    async def derive_from_private_key(self, private_key: str) -> str:
        try:
            return Account.from_key(private_key).address
        except (ValueError, TypeError) as e:
            raise KeyDerivationError(f"invalid private key: {e}") from None

    async def decrypt_keystore(self, keystore_json: str, password: str) -> DerivedKey:
        return await asyncio.to_thread(self._decrypt_keystore, keystore_json, password)

    def _decrypt_keystore(self, keystore_json: str, password: str) -> DerivedKey:
        try:
            keyfile = json.loads(keystore_json)
        except json.JSONDecodeError as e:
            raise KeyDerivationError(f"keystore is not valid JSON: {e.msg}") from None

        try:
            raw_key = Account.decrypt(keyfile, password)
        except ValueError as e:
            # eth_keyfile raises ValueError("MAC mismatch") for a wrong password
            raise KeyDerivationError(f"could not decrypt keystore: {e}") from None
        except (KeyError, TypeError) as e:
            raise KeyDerivationError(f"malformed keystore: missing {e}") from None

        account = Account.from_key(raw_key)
        return DerivedKey(
            address=account.address,
            private_key=_normalize_key_hex(bytes(raw_key).hex()),
        )

    async def encrypt_to_keystore(self, private_key: str, password: str) -> str:
        keyfile = await asyncio.to_thread(
            Account.encrypt,
            private_key,
            password,
            kdf=self._keystore_kdf,
            iterations=self._keystore_iterations,
        )
        return json.dumps(keyfile)

    async def sign(self, private_key: str, tx_params: dict[str, Any]) -> bytes:
        signed = Account.sign_transaction(tx_params, private_key)
        logger.debug("Signed transaction nonce=%s chain=%s", tx_params.get("nonce"), tx_params.get("chainId"))
        return bytes(signed.raw_transaction)
