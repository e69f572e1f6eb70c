"""Wallet operations: validation, dispatch and the session-serializing service."""

from bnbwallet.operations.dispatcher import OperationDispatcher
from bnbwallet.operations.service import WalletService, create_wallet_service
from bnbwallet.operations.validator import operation_catalogue, validate

__all__ = [
    "OperationDispatcher",
    "WalletService",
    "create_wallet_service",
    "operation_catalogue",
    "validate",
]
