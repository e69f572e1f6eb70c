"""Operation validator.

``validate(session, request)`` is a pure function: it reads the session,
never mutates it, and either returns a normalized command or raises a
``ValidationError``. Checks run in a fixed order and the first failure
wins:

1. Structure   - known operation, known parameter names, required
                 parameters present with the right JSON type
2. Session     - identity / connection preconditions
3. Semantics   - amounts, addresses, chain IDs, export formats
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Callable, Mapping

from eth_utils import is_checksum_address, is_hex_address, to_checksum_address

from bnbwallet.contracts.operations import (
    KNOWN_PARAMETERS,
    ExportFormat,
    OperationKind,
    OperationRequest,
)
from bnbwallet.errors import (
    InvalidFormatError,
    InvalidStateError,
    MissingParameterError,
    UnknownOperationError,
)
from bnbwallet.operations.commands import (
    Command,
    ConnectWallet,
    CreateWallet,
    ExportWallet,
    GetBalance,
    GetTokenBalance,
    ImportFromKeystore,
    ImportFromMnemonic,
    ImportFromPrivateKey,
    SendBNB,
    SendToken,
    SwitchChain,
)
from bnbwallet.secret import (
    KeystoreSecret,
    MnemonicSecret,
    PrivateKeySecret,
    SensitiveValue,
)
from bnbwallet.session import WalletSession

ZERO_ADDRESS = "0x" + "0" * 40
MAX_NATIVE_DECIMALS = 18


class Precondition(str, Enum):
    NONE = "none"
    IDENTITY = "identity"
    CONNECTION = "connection"


# ======================
# Structural checks
# ======================

def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def _check_string(field: str, value: Any) -> None:
    if not isinstance(value, str):
        raise MissingParameterError(field, "expected a string")
    if not value.strip():
        raise MissingParameterError(field)


def _check_chain_id(field: str, value: Any) -> None:
    if isinstance(value, str):
        if not value.strip():
            raise MissingParameterError(field)
        return
    if not isinstance(value, int) or isinstance(value, bool):
        raise MissingParameterError(field, "expected a number or numeric string")


def _check_amount(field: str, value: Any) -> None:
    if isinstance(value, str):
        if not value.strip():
            raise MissingParameterError(field)
        return
    if not _is_number(value):
        raise MissingParameterError(field, "expected a number or decimal string")


TYPE_CHECKS: dict[str, Callable[[str, Any], None]] = {
    "chainId": _check_chain_id,
    "amount": _check_amount,
}


def _check_parameter(field: str, params: Mapping[str, Any]) -> None:
    if field not in params:
        raise MissingParameterError(field)
    TYPE_CHECKS.get(field, _check_string)(field, params[field])


# ======================
# Semantic parsers
# ======================

def parse_amount(value: Any, field: str = "amount") -> Decimal:
    """Parse a strictly positive, finite decimal amount."""
    try:
        amount = Decimal(value.strip()) if isinstance(value, str) else Decimal(str(value))
    except InvalidOperation:
        raise InvalidFormatError(field, f"'{value}' is not a decimal number") from None

    if not amount.is_finite():
        raise InvalidFormatError(field, "must be a finite number")
    if amount <= 0:
        raise InvalidFormatError(field, "must be greater than zero")
    return amount


def parse_chain_id(value: Any, field: str = "chainId") -> int:
    """Parse a chain ID given as int, decimal string or 0x-hex string."""
    if isinstance(value, int):
        chain_id = value
    else:
        text = value.strip().lower()
        try:
            chain_id = int(text, 16) if text.startswith("0x") else int(text, 10)
        except ValueError:
            raise InvalidFormatError(field, f"'{value}' is not a chain id") from None

    if chain_id <= 0:
        raise InvalidFormatError(field, "must be a positive integer")
    return chain_id


def parse_address(value: str, field: str) -> str:
    """Validate a 0x address (EIP-55 checked when mixed case) and checksum it."""
    value = value.strip()
    if not value.startswith("0x") or not is_hex_address(value):
        raise InvalidFormatError(field, "must be a 0x-prefixed 20-byte hex address")
    body = value[2:]
    mixed_case = body != body.lower() and body != body.upper()
    if mixed_case and not is_checksum_address(value):
        raise InvalidFormatError(field, "EIP-55 checksum mismatch")
    return to_checksum_address(value)


def parse_private_key(value: str) -> str:
    """Normalize to 0x + 64 lowercase hex characters."""
    body = value.strip().lower().removeprefix("0x")
    if len(body) != 64:
        raise InvalidFormatError("privateKey", "must be 32 bytes (64 hex characters)")
    try:
        bytes.fromhex(body)
    except ValueError:
        raise InvalidFormatError("privateKey", "must be hexadecimal") from None
    return "0x" + body


def parse_export_format(value: str) -> ExportFormat:
    try:
        return ExportFormat(value.strip())
    except ValueError:
        allowed = ", ".join(f.value for f in ExportFormat)
        raise InvalidFormatError("exportFormat", f"must be one of {allowed}") from None


# ======================
# Command builders
# ======================

def _build_create(session: WalletSession, params: Mapping[str, Any]) -> Command:
    return CreateWallet()


def _build_import_mnemonic(session: WalletSession, params: Mapping[str, Any]) -> Command:
    phrase = " ".join(params["mnemonic"].split())
    return ImportFromMnemonic(secret=MnemonicSecret(SensitiveValue(phrase)))


def _build_import_keystore(session: WalletSession, params: Mapping[str, Any]) -> Command:
    return ImportFromKeystore(
        secret=KeystoreSecret(
            keystore_json=SensitiveValue(params["keystoreJson"]),
            password=SensitiveValue(params["keystorePassword"]),
        )
    )


def _build_import_private_key(session: WalletSession, params: Mapping[str, Any]) -> Command:
    key = parse_private_key(params["privateKey"])
    return ImportFromPrivateKey(secret=PrivateKeySecret(SensitiveValue(key)))


def _build_connect(session: WalletSession, params: Mapping[str, Any]) -> Command:
    if "chainId" in params:
        return ConnectWallet(chain_id=parse_chain_id(params["chainId"]))
    return ConnectWallet(chain_id=session.active_chain_id)


def _build_export(session: WalletSession, params: Mapping[str, Any]) -> Command:
    export_format = parse_export_format(params["exportFormat"])
    password = None
    if export_format is ExportFormat.KEYSTORE:
        password = SensitiveValue(params["password"])
    return ExportWallet(export_format=export_format, password=password)


def _build_get_balance(session: WalletSession, params: Mapping[str, Any]) -> Command:
    return GetBalance()


def _build_send_bnb(session: WalletSession, params: Mapping[str, Any]) -> Command:
    to_address = parse_address(params["toAddress"], "toAddress")
    if to_address == ZERO_ADDRESS:
        raise InvalidFormatError("toAddress", "refusing to send to the zero address")
    amount = parse_amount(params["amount"])
    if -amount.normalize().as_tuple().exponent > MAX_NATIVE_DECIMALS:
        raise InvalidFormatError("amount", f"more than {MAX_NATIVE_DECIMALS} decimal places")
    return SendBNB(to_address=to_address, amount=amount)


def _build_get_token_balance(session: WalletSession, params: Mapping[str, Any]) -> Command:
    return GetTokenBalance(token_address=parse_address(params["tokenAddress"], "tokenAddress"))


def _build_send_token(session: WalletSession, params: Mapping[str, Any]) -> Command:
    token_address = parse_address(params["tokenAddress"], "tokenAddress")
    to_address = parse_address(params["toAddress"], "toAddress")
    if to_address == ZERO_ADDRESS:
        raise InvalidFormatError("toAddress", "refusing to send to the zero address")
    return SendToken(
        token_address=token_address,
        to_address=to_address,
        amount=parse_amount(params["amount"]),
    )


def _build_switch_chain(session: WalletSession, params: Mapping[str, Any]) -> Command:
    return SwitchChain(chain_id=parse_chain_id(params["chainId"]))


# ======================
# Rule table
# ======================

@dataclass(frozen=True)
class OperationRule:
    """Required parameters, session precondition and builder for one operation."""

    required: tuple[str, ...]
    precondition: Precondition
    build: Callable[[WalletSession, Mapping[str, Any]], Command]
    optional: tuple[str, ...] = ()


RULES: dict[OperationKind, OperationRule] = {
    OperationKind.CREATE_WALLET: OperationRule(
        required=(), precondition=Precondition.NONE, build=_build_create,
    ),
    OperationKind.IMPORT_FROM_MNEMONIC: OperationRule(
        required=("mnemonic",), precondition=Precondition.NONE, build=_build_import_mnemonic,
    ),
    OperationKind.IMPORT_FROM_KEYSTORE: OperationRule(
        required=("keystoreJson", "keystorePassword"),
        precondition=Precondition.NONE,
        build=_build_import_keystore,
    ),
    OperationKind.IMPORT_FROM_PRIVATE_KEY: OperationRule(
        required=("privateKey",), precondition=Precondition.NONE, build=_build_import_private_key,
    ),
    OperationKind.CONNECT_WALLET: OperationRule(
        required=(),
        optional=("chainId",),
        precondition=Precondition.IDENTITY,
        build=_build_connect,
    ),
    OperationKind.EXPORT_WALLET: OperationRule(
        required=("exportFormat",),
        optional=("password",),
        precondition=Precondition.IDENTITY,
        build=_build_export,
    ),
    OperationKind.GET_BALANCE: OperationRule(
        required=(), precondition=Precondition.CONNECTION, build=_build_get_balance,
    ),
    OperationKind.SEND_BNB: OperationRule(
        required=("toAddress", "amount"),
        precondition=Precondition.CONNECTION,
        build=_build_send_bnb,
    ),
    OperationKind.GET_TOKEN_BALANCE: OperationRule(
        required=("tokenAddress",),
        precondition=Precondition.CONNECTION,
        build=_build_get_token_balance,
    ),
    OperationKind.SEND_TOKEN: OperationRule(
        required=("tokenAddress", "toAddress", "amount"),
        precondition=Precondition.CONNECTION,
        build=_build_send_token,
    ),
    OperationKind.SWITCH_CHAIN: OperationRule(
        required=("chainId",), precondition=Precondition.IDENTITY, build=_build_switch_chain,
    ),
}

_unruled = set(OperationKind) - set(RULES)
if _unruled:
    raise RuntimeError(f"No validation rule for: {sorted(k.value for k in _unruled)}")


def _check_structure(kind: OperationKind, rule: OperationRule, params: Mapping[str, Any]) -> None:
    for field in params:
        if field not in KNOWN_PARAMETERS:
            raise InvalidFormatError(field, "unrecognized parameter")

    for field in rule.required:
        _check_parameter(field, params)

    # password is required iff exporting to keystore
    if kind is OperationKind.EXPORT_WALLET and str(params["exportFormat"]).strip() == ExportFormat.KEYSTORE.value:
        _check_parameter("password", params)

    for field in rule.optional:
        if field in params:
            _check_parameter(field, params)


def _check_precondition(precondition: Precondition, session: WalletSession) -> None:
    if precondition is Precondition.NONE:
        return

    if not session.has_identity:
        raise InvalidStateError("identity required: create or import a wallet first")

    if precondition is Precondition.CONNECTION:
        if session.connection_is_stale:
            raise InvalidStateError(
                f"connection required: wallet is connected to chain {session.connection.chain_id} "
                f"but the active chain is {session.active_chain_id}; call connectWallet"
            )
        if not session.is_connected:
            raise InvalidStateError("connection required: call connectWallet first")


def validate(session: WalletSession, request: OperationRequest) -> Command:
    """Check ``request`` against ``session`` and return a normalized command.

    Raises:
        UnknownOperationError: Operation name is not in OperationKind
        MissingParameterError: Required parameter absent or wrongly typed
        InvalidStateError: Session precondition not met
        InvalidFormatError: Parameter present but malformed
    """
    kind = request.kind
    if kind is None:
        raise UnknownOperationError(request.operation)

    rule = RULES[kind]
    params = request.parameters

    _check_structure(kind, rule, params)
    _check_precondition(rule.precondition, session)
    return rule.build(session, params)


def operation_catalogue() -> list[dict[str, Any]]:
    """Describe every operation: parameters and precondition."""
    catalogue = []
    for kind, rule in RULES.items():
        optional = list(rule.optional)
        required = list(rule.required)
        if kind is OperationKind.EXPORT_WALLET:
            optional = []
            required_if = {"password": "exportFormat == keystore"}
        else:
            required_if = {}
        catalogue.append({
            "operation": kind.value,
            "required": required,
            "optional": optional,
            "requiredIf": required_if,
            "precondition": rule.precondition.value,
        })
    return catalogue
