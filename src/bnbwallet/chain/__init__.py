"""Chain Client: balances, transaction preparation and broadcast."""

from bnbwallet.chain.base import (
    ChainClient,
    ChainClientError,
    TokenBalance,
    TransientChainError,
)
from bnbwallet.chain.factory import get_chain_client

__all__ = [
    "ChainClient",
    "ChainClientError",
    "TokenBalance",
    "TransientChainError",
    "get_chain_client",
]
