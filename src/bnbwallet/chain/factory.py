"""Chain client factory.

Creates the appropriate chain client based on configuration:
- dry_run=True  -> SimulatedChainClient (no network)
- dry_run=False -> RpcChainClient against the configured endpoints
"""

import logging
from typing import Optional

from bnbwallet.chain.base import ChainClient
from bnbwallet.chain.rpc import RpcChainClient
from bnbwallet.chain.simulated import SimulatedChainClient
from bnbwallet.config import Settings, get_settings

logger = logging.getLogger(__name__)


def get_chain_client(settings: Optional[Settings] = None) -> ChainClient:
    """Build the chain client for the given (or global) settings."""
    settings = settings or get_settings()

    if settings.dry_run:
        logger.info("Using simulated chain client (DRY_RUN=true)")
        return SimulatedChainClient()

    logger.info("Using JSON-RPC chain client")
    return RpcChainClient(
        rpc_urls=settings.get_rpc_urls(),
        timeout=settings.rpc_timeout,
        native_transfer_gas=settings.native_transfer_gas,
        token_transfer_gas=settings.token_transfer_gas,
    )
