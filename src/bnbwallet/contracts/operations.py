"""Operation request contract.

Requests arrive either as ``{"operation": ..., "parameters": {...}}`` or in
the flat form ``{"operation": ..., "toAddress": ..., "amount": ...}``.
The operation name is kept as a plain string so the validator, not the
parser, decides whether it is known.
"""

from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator

from bnbwallet.errors import InvalidFormatError, MissingParameterError
from bnbwallet.secret import REDACTED


class OperationKind(str, Enum):
    """Closed set of wallet operations."""

    CONNECT_WALLET = "connectWallet"
    CREATE_WALLET = "createWallet"
    IMPORT_FROM_MNEMONIC = "importFromMnemonic"
    IMPORT_FROM_KEYSTORE = "importFromKeystore"
    IMPORT_FROM_PRIVATE_KEY = "importFromPrivateKey"
    GET_BALANCE = "getBalance"
    SEND_BNB = "sendBNB"
    GET_TOKEN_BALANCE = "getTokenBalance"
    SEND_TOKEN = "sendToken"
    SWITCH_CHAIN = "switchChain"
    EXPORT_WALLET = "exportWallet"

    @classmethod
    def parse(cls, value: str) -> "OperationKind | None":
        try:
            return cls(value)
        except ValueError:
            return None


class ExportFormat(str, Enum):
    MNEMONIC = "mnemonic"
    PRIVATE_KEY = "privateKey"
    KEYSTORE = "keystore"


# Every parameter name any operation understands
KNOWN_PARAMETERS = frozenset({
    "chainId",
    "toAddress",
    "amount",
    "tokenAddress",
    "mnemonic",
    "keystoreJson",
    "keystorePassword",
    "privateKey",
    "exportFormat",
    "password",
})

SENSITIVE_PARAMETERS = frozenset({
    "mnemonic",
    "keystoreJson",
    "keystorePassword",
    "privateKey",
    "password",
})


class OperationRequest(BaseModel):
    """Immutable operation request."""

    model_config = ConfigDict(frozen=True)

    operation: str = Field(..., description="Operation name (see OperationKind)")
    parameters: Mapping[str, Any] = Field(
        default_factory=dict, description="Operation parameters"
    )

    @field_validator("parameters", mode="after")
    @classmethod
    def freeze_parameters(cls, v: Mapping[str, Any]) -> Mapping[str, Any]:
        return MappingProxyType(dict(v))

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "OperationRequest":
        """Build a request from either the nested or the flat form.

        Raises:
            MissingParameterError: If ``operation`` is absent or not a string
        """
        operation = payload.get("operation")
        if not isinstance(operation, str) or not operation:
            raise MissingParameterError("operation")

        if "parameters" in payload:
            parameters = payload["parameters"]
            if parameters is None:
                parameters = {}
            if not isinstance(parameters, Mapping):
                raise InvalidFormatError("parameters", "must be an object")
        else:
            parameters = {k: v for k, v in payload.items() if k != "operation"}

        # Optional fields sent as explicit nulls count as absent
        parameters = {k: v for k, v in parameters.items() if v is not None}
        return cls(operation=operation, parameters=parameters)

    @property
    def kind(self) -> "OperationKind | None":
        return OperationKind.parse(self.operation)

    def redacted_parameters(self) -> dict[str, Any]:
        """Parameters with secret values masked, safe for logs."""
        return {
            k: (REDACTED if k in SENSITIVE_PARAMETERS else v)
            for k, v in self.parameters.items()
        }

    def __repr_args__(self):
        yield "operation", self.operation
        yield "parameters", self.redacted_parameters()


def describe_request(request: OperationRequest) -> str:
    """One-line human description of a request. Never includes secrets."""
    params = request.parameters
    kind = request.kind

    if kind is OperationKind.CONNECT_WALLET:
        return "Connect to BNB Chain wallet"
    if kind is OperationKind.CREATE_WALLET:
        return "Create a new BNB Chain wallet"
    if kind is OperationKind.IMPORT_FROM_MNEMONIC:
        return "Import wallet from mnemonic phrase"
    if kind is OperationKind.IMPORT_FROM_KEYSTORE:
        return "Import wallet from keystore JSON"
    if kind is OperationKind.IMPORT_FROM_PRIVATE_KEY:
        return "Import wallet from private key"
    if kind is OperationKind.GET_BALANCE:
        return "Get BNB balance in wallet"
    if kind is OperationKind.SEND_BNB:
        return f"Send {params.get('amount')} BNB to {params.get('toAddress')}"
    if kind is OperationKind.GET_TOKEN_BALANCE:
        return f"Get token balance for contract {params.get('tokenAddress')}"
    if kind is OperationKind.SEND_TOKEN:
        return (
            f"Send {params.get('amount')} tokens from contract "
            f"{params.get('tokenAddress')} to {params.get('toAddress')}"
        )
    if kind is OperationKind.SWITCH_CHAIN:
        return f"Switch to BNB Chain ID {params.get('chainId') or '56 (mainnet)'}"
    if kind is OperationKind.EXPORT_WALLET:
        return f"Export wallet to {params.get('exportFormat')} format"
    return f"BNB Chain Wallet: {request.operation}"
