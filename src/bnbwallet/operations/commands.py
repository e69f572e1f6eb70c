"""Normalized, ready-to-execute commands produced by the validator.

Commands carry parsed values (``Decimal`` amounts, checksummed addresses,
integer chain IDs, wrapped secrets) so the dispatcher never re-parses
caller input.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import ClassVar, Optional, Union

from bnbwallet.contracts.operations import ExportFormat, OperationKind
from bnbwallet.secret import (
    KeystoreSecret,
    MnemonicSecret,
    PrivateKeySecret,
    SensitiveValue,
)


class _Command:
    kind: ClassVar[OperationKind]

    def wipe(self) -> None:
        """Scrub any request-supplied secret."""


@dataclass(frozen=True)
class CreateWallet(_Command):
    kind: ClassVar[OperationKind] = OperationKind.CREATE_WALLET


@dataclass(frozen=True)
class ImportFromMnemonic(_Command):
    kind: ClassVar[OperationKind] = OperationKind.IMPORT_FROM_MNEMONIC
    secret: MnemonicSecret

    def wipe(self) -> None:
        self.secret.wipe()


@dataclass(frozen=True)
class ImportFromKeystore(_Command):
    kind: ClassVar[OperationKind] = OperationKind.IMPORT_FROM_KEYSTORE
    secret: KeystoreSecret

    def wipe(self) -> None:
        self.secret.wipe()


@dataclass(frozen=True)
class ImportFromPrivateKey(_Command):
    kind: ClassVar[OperationKind] = OperationKind.IMPORT_FROM_PRIVATE_KEY
    secret: PrivateKeySecret

    def wipe(self) -> None:
        self.secret.wipe()


@dataclass(frozen=True)
class ConnectWallet(_Command):
    kind: ClassVar[OperationKind] = OperationKind.CONNECT_WALLET
    chain_id: int


@dataclass(frozen=True)
class ExportWallet(_Command):
    kind: ClassVar[OperationKind] = OperationKind.EXPORT_WALLET
    export_format: ExportFormat
    password: Optional[SensitiveValue] = None

    def wipe(self) -> None:
        if self.password is not None:
            self.password.wipe()


@dataclass(frozen=True)
class GetBalance(_Command):
    kind: ClassVar[OperationKind] = OperationKind.GET_BALANCE


@dataclass(frozen=True)
class SendBNB(_Command):
    kind: ClassVar[OperationKind] = OperationKind.SEND_BNB
    to_address: str
    amount: Decimal


@dataclass(frozen=True)
class GetTokenBalance(_Command):
    kind: ClassVar[OperationKind] = OperationKind.GET_TOKEN_BALANCE
    token_address: str


@dataclass(frozen=True)
class SendToken(_Command):
    kind: ClassVar[OperationKind] = OperationKind.SEND_TOKEN
    token_address: str
    to_address: str
    amount: Decimal


@dataclass(frozen=True)
class SwitchChain(_Command):
    kind: ClassVar[OperationKind] = OperationKind.SWITCH_CHAIN
    chain_id: int


Command = Union[
    CreateWallet,
    ImportFromMnemonic,
    ImportFromKeystore,
    ImportFromPrivateKey,
    ConnectWallet,
    ExportWallet,
    GetBalance,
    SendBNB,
    GetTokenBalance,
    SendToken,
    SwitchChain,
]
