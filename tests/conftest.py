"""Pytest configuration and fixtures."""

import json
import os

import pytest
from eth_account import Account

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DRY_RUN"] = "true"
os.environ["DEBUG"] = "true"

from bnbwallet.chain.simulated import SimulatedChainClient
from bnbwallet.config import get_settings
from bnbwallet.operations.service import WalletService
from bnbwallet.signing.local import LocalKeyProvider

get_settings.cache_clear()

# BIP-39 test vector; m/44'/60'/0'/0/0
TEST_MNEMONIC = (
    "abandon abandon abandon abandon abandon abandon "
    "abandon abandon abandon abandon abandon about"
)
TEST_MNEMONIC_ADDRESS = "0x9858EfFD232B4033E47d90003D41EC34EcaEda94"
TEST_MNEMONIC_PRIVATE_KEY = "0x1ab42cc412b618bdea3a599e3c9bae199ebf030895b039e9db1e30dafb12b727"

TEST_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
KEYSTORE_PASSWORD = "correct horse battery staple"

RECIPIENT = "0x" + "b" * 40
TOKEN = "0x" + "a" * 40


@pytest.fixture
def private_key_address() -> str:
    return Account.from_key(TEST_PRIVATE_KEY).address


@pytest.fixture
def keystore_json() -> str:
    """Cheap pbkdf2 keystore for TEST_PRIVATE_KEY."""
    return json.dumps(
        Account.encrypt(TEST_PRIVATE_KEY, KEYSTORE_PASSWORD, kdf="pbkdf2", iterations=2)
    )


@pytest.fixture
def key_provider() -> LocalKeyProvider:
    return LocalKeyProvider(keystore_kdf="pbkdf2", keystore_iterations=2)


@pytest.fixture
def chain_client() -> SimulatedChainClient:
    return SimulatedChainClient()


@pytest.fixture
def service(key_provider, chain_client) -> WalletService:
    return WalletService(
        key_provider=key_provider,
        chain_client=chain_client,
        collaborator_timeout=5.0,
        read_retry_backoff=0,
    )
