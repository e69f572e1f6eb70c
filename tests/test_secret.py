"""Tests for sensitive value handling."""

import pickle

import pytest

from bnbwallet.secret import (
    Keyring,
    KeystoreSecret,
    MnemonicSecret,
    PrivateKeySecret,
    SensitiveValue,
)


class TestSensitiveValue:
    """Tests for SensitiveValue redaction and wiping."""

    def test_reveal(self):
        value = SensitiveValue("hunter2")
        assert value.reveal() == "hunter2"

    def test_repr_and_str_are_redacted(self):
        value = SensitiveValue("hunter2")

        assert "hunter2" not in repr(value)
        assert "hunter2" not in str(value)
        assert "hunter2" not in f"{value}"

    def test_wipe_zeroes_and_blocks_reveal(self):
        value = SensitiveValue("hunter2")
        value.wipe()

        assert value.wiped
        with pytest.raises(ValueError):
            value.reveal()

    def test_equality_compares_content(self):
        assert SensitiveValue("a") == SensitiveValue("a")
        assert SensitiveValue("a") != SensitiveValue("b")

    def test_cannot_be_pickled(self):
        with pytest.raises(TypeError):
            pickle.dumps(SensitiveValue("hunter2"))


class TestSecretMaterial:
    """Tests for the secret material wrappers."""

    def test_wrappers_redact(self):
        secrets = [
            MnemonicSecret(SensitiveValue("word " * 12)),
            PrivateKeySecret(SensitiveValue("0x" + "11" * 32)),
            KeystoreSecret(SensitiveValue("{}"), SensitiveValue("pw")),
        ]
        for secret in secrets:
            assert "***" in repr(secret)
            assert "11" * 32 not in repr(secret)

    def test_keystore_wipe_covers_password(self):
        secret = KeystoreSecret(SensitiveValue("{}"), SensitiveValue("pw"))
        secret.wipe()

        assert secret.keystore_json.wiped
        assert secret.password.wiped

    def test_keyring_mnemonic_flag(self):
        with_phrase = Keyring(SensitiveValue("0x" + "11" * 32), SensitiveValue("a b c"))
        without = Keyring(SensitiveValue("0x" + "11" * 32))

        assert with_phrase.has_mnemonic
        assert not without.has_mnemonic
        assert "a b c" not in repr(with_phrase)
