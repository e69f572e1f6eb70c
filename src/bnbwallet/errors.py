"""Error taxonomy for wallet operations.

Every failure a caller can observe is a ``WalletError`` carrying an
``ErrorKind``. Validator-level kinds never reach a collaborator and never
change session state; dispatcher-level kinds are reported verbatim.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Logical result kinds for failed operations."""

    UNKNOWN_OPERATION = "UnknownOperation"
    MISSING_PARAMETER = "MissingParameter"
    INVALID_STATE = "InvalidState"
    INVALID_FORMAT = "InvalidFormat"
    KEY_DERIVATION_FAILED = "KeyDerivationFailed"
    CONNECTION_FAILED = "ConnectionFailed"
    UNSUPPORTED_EXPORT = "UnsupportedExport"
    INSUFFICIENT_FUNDS = "InsufficientFunds"
    BROADCAST_ERROR = "BroadcastError"
    COLLABORATOR_TIMEOUT = "CollaboratorTimeout"
    UNEXPECTED = "Unexpected"


VALIDATION_KINDS = frozenset({
    ErrorKind.UNKNOWN_OPERATION,
    ErrorKind.MISSING_PARAMETER,
    ErrorKind.INVALID_STATE,
    ErrorKind.INVALID_FORMAT,
})

UNKNOWN_OUTCOME_PREFIX = "unknown outcome - check chain"


class WalletError(Exception):
    """Base class for every typed wallet failure."""

    kind: ErrorKind = ErrorKind.UNEXPECTED

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    @property
    def is_validation_error(self) -> bool:
        return self.kind in VALIDATION_KINDS

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


class ValidationError(WalletError):
    """Raised by the validator; nothing was dispatched."""


class UnknownOperationError(ValidationError):
    kind = ErrorKind.UNKNOWN_OPERATION

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Unknown operation: {operation}")


class MissingParameterError(ValidationError):
    kind = ErrorKind.MISSING_PARAMETER

    def __init__(self, field: str, detail: Optional[str] = None):
        self.field = field
        message = f"Missing required parameter: {field}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class InvalidStateError(ValidationError):
    kind = ErrorKind.INVALID_STATE

    def __init__(self, precondition: str):
        self.precondition = precondition
        super().__init__(precondition)


class InvalidFormatError(ValidationError):
    kind = ErrorKind.INVALID_FORMAT

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")


class KeyDerivationError(WalletError):
    """Key Provider could not derive a key from the supplied secret."""

    kind = ErrorKind.KEY_DERIVATION_FAILED


class ConnectionFailedError(WalletError):
    kind = ErrorKind.CONNECTION_FAILED


class UnsupportedExportError(WalletError):
    kind = ErrorKind.UNSUPPORTED_EXPORT


class InsufficientFundsError(WalletError):
    kind = ErrorKind.INSUFFICIENT_FUNDS


class OutcomeAwareError(WalletError):
    """Failure that may have happened after a transaction left the process."""

    def __init__(self, message: str, outcome_unknown: bool = False):
        self.outcome_unknown = outcome_unknown
        if outcome_unknown:
            message = f"{UNKNOWN_OUTCOME_PREFIX}: {message}"
        super().__init__(message)


class BroadcastError(OutcomeAwareError):
    kind = ErrorKind.BROADCAST_ERROR


class CollaboratorTimeoutError(OutcomeAwareError):
    kind = ErrorKind.COLLABORATOR_TIMEOUT


class UnexpectedError(WalletError):
    kind = ErrorKind.UNEXPECTED
