"""BNB Chain network registry.

Mainnet (56) and testnet (97) share the EVM address format and the
standard BIP44 derivation path used by Trust Wallet / MetaMask.
"""

from dataclasses import dataclass
from typing import Optional

MAINNET_CHAIN_ID = 56
TESTNET_CHAIN_ID = 97


@dataclass(frozen=True)
class ChainConfig:
    """Configuration for a BNB Chain network."""

    chain_id: int
    name: str
    symbol: str
    explorer_url: str
    is_testnet: bool = False
    decimals: int = 18


CHAINS: dict[int, ChainConfig] = {
    MAINNET_CHAIN_ID: ChainConfig(
        chain_id=MAINNET_CHAIN_ID,
        name="BNB Chain Mainnet",
        symbol="BNB",
        explorer_url="https://bscscan.com",
    ),
    TESTNET_CHAIN_ID: ChainConfig(
        chain_id=TESTNET_CHAIN_ID,
        name="BNB Chain Testnet",
        symbol="BNB",
        explorer_url="https://testnet.bscscan.com",
        is_testnet=True,
    ),
}

# BIP44 path for EVM accounts (Trust Wallet / MetaMask compatible)
DERIVATION_PATH = "m/44'/60'/0'/0/{index}"

NATIVE_UNIT = "BNB"


def get_chain(chain_id: int) -> Optional[ChainConfig]:
    """Get chain configuration by numeric chain ID."""
    return CHAINS.get(chain_id)


def chain_name(chain_id: int) -> str:
    """Human-readable chain name, falling back to the numeric ID."""
    chain = get_chain(chain_id)
    if chain:
        return chain.name
    return f"Chain {chain_id}"


def tx_url(chain_id: int, tx_hash: str) -> Optional[str]:
    """Explorer link for a transaction, if the chain is known."""
    chain = get_chain(chain_id)
    if not chain:
        return None
    return f"{chain.explorer_url}/tx/{tx_hash}"
