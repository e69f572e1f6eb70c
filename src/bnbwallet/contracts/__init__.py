"""Request and response contracts for wallet operations."""

from bnbwallet.contracts.operations import (
    ExportFormat,
    OperationKind,
    OperationRequest,
    describe_request,
)
from bnbwallet.contracts.results import (
    BalanceResult,
    ConnectResult,
    ExportResult,
    Failure,
    OperationResponse,
    OperationResult,
    Success,
    SwitchChainResult,
    TokenBalanceResult,
    TokenTransferResult,
    TransferResult,
    WalletCreatedResult,
    WalletImportedResult,
)

__all__ = [
    # Requests
    "ExportFormat",
    "OperationKind",
    "OperationRequest",
    "describe_request",
    # Results
    "BalanceResult",
    "ConnectResult",
    "ExportResult",
    "Failure",
    "OperationResponse",
    "OperationResult",
    "Success",
    "SwitchChainResult",
    "TokenBalanceResult",
    "TokenTransferResult",
    "TransferResult",
    "WalletCreatedResult",
    "WalletImportedResult",
]
