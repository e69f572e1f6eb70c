"""Operation results and the wire response.

Each operation's success case has its own payload model; ``Success`` and
``Failure`` form the internal result union and ``OperationResponse`` is
the ``{success, data?, error?}`` shape returned to callers.
"""

import json
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from bnbwallet.errors import ErrorKind, WalletError


def format_amount(value: Decimal) -> str:
    """Plain decimal string without exponent or trailing zeros."""
    if value == 0:
        return "0"
    return f"{value.normalize():f}"


class ResultPayload(BaseModel):
    """Base for all success payloads (camelCase on the wire)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_data(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class WalletCreatedResult(ResultPayload):
    address: str
    source: str = "mnemonic"
    message: str = "New wallet created successfully. Use exportWallet to back it up."


class WalletImportedResult(ResultPayload):
    address: str
    imported: bool = True
    source: str
    message: str


class ConnectResult(ResultPayload):
    address: str
    chain_id: int
    chain_name: str
    connected: bool = True
    connected_at: str


class BalanceResult(ResultPayload):
    address: str
    balance: str
    unit: str = "BNB"
    chain_id: int


class TokenBalanceResult(ResultPayload):
    address: str
    token_address: str
    balance: str
    symbol: str
    chain_id: int


class TransferResult(ResultPayload):
    tx_hash: str
    sender: str = Field(alias="from")
    to: str
    amount: str
    unit: str = "BNB"
    chain_id: int
    explorer_url: Optional[str] = None


class TokenTransferResult(ResultPayload):
    tx_hash: str
    sender: str = Field(alias="from")
    to: str
    token_address: str
    amount: str
    symbol: str
    chain_id: int
    explorer_url: Optional[str] = None


class SwitchChainResult(ResultPayload):
    chain_id: int
    name: str
    connected: bool
    message: str


class ExportResult(ResultPayload):
    """Exactly one of mnemonic / private_key / keystore is set."""

    format: str
    mnemonic: Optional[str] = None
    private_key: Optional[str] = None
    keystore: Optional[str] = None
    message: str

    @model_validator(mode="after")
    def one_secret(self) -> "ExportResult":
        present = [v for v in (self.mnemonic, self.private_key, self.keystore) if v is not None]
        if len(present) != 1:
            raise ValueError("export result must carry exactly one secret")
        return self

    def __repr_args__(self):
        yield "format", self.format


@dataclass(frozen=True)
class Success:
    payload: ResultPayload

    @property
    def success(self) -> bool:
        return True

    def to_response(self) -> "OperationResponse":
        return OperationResponse(success=True, data=self.payload.to_data())


@dataclass(frozen=True)
class Failure:
    error: WalletError

    @property
    def success(self) -> bool:
        return False

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind

    @property
    def message(self) -> str:
        return self.error.message

    @property
    def outcome_unknown(self) -> bool:
        return getattr(self.error, "outcome_unknown", False)

    def to_response(self) -> "OperationResponse":
        return OperationResponse(success=False, error=str(self.error))


OperationResult = Union[Success, Failure]


class OperationResponse(BaseModel):
    """Wire response: ``data`` and ``error`` are mutually exclusive."""

    success: bool = Field(..., description="Whether the operation succeeded")
    data: Optional[dict[str, Any]] = Field(None, description="Operation payload on success")
    error: Optional[str] = Field(None, description="Error message on failure")

    @model_validator(mode="after")
    def exclusive(self) -> "OperationResponse":
        if self.success and (self.data is None or self.error is not None):
            raise ValueError("successful response must carry data and no error")
        if not self.success and (self.error is None or self.data is not None):
            raise ValueError("failed response must carry an error and no data")
        return self

    def render(self) -> str:
        """Compact text form for assistant/CLI consumers."""
        if self.success:
            return f"Success: {json.dumps(self.data)}"
        return f"Error: {self.error}"
