"""Wallet service.

Entry point for callers: takes a raw request, serializes it against the
session, validates, dispatches and returns a typed result. Failures of
any kind come back as ``Failure``; nothing raises out of ``execute``
except cancellation before dispatch began.
"""

import asyncio
import logging
from typing import Any, Mapping, Optional, Union

from bnbwallet.chain.base import ChainClient
from bnbwallet.chain.factory import get_chain_client
from bnbwallet.config import Settings, get_settings
from bnbwallet.contracts.operations import OperationRequest, describe_request
from bnbwallet.contracts.results import (
    Failure,
    OperationResponse,
    OperationResult,
    Success,
)
from bnbwallet.errors import InvalidStateError, UnexpectedError, WalletError
from bnbwallet.operations.dispatcher import OperationDispatcher
from bnbwallet.operations.validator import validate
from bnbwallet.session import WalletSession
from bnbwallet.signing.base import KeyProvider
from bnbwallet.signing.local import LocalKeyProvider
from bnbwallet.utils.locks import LockTimeoutError, SessionLock

logger = logging.getLogger(__name__)


class WalletService:
    """One wallet session plus the machinery to operate on it."""

    def __init__(
        self,
        key_provider: KeyProvider,
        chain_client: ChainClient,
        session: Optional[WalletSession] = None,
        collaborator_timeout: float = 45.0,
        read_retry_attempts: int = 3,
        read_retry_backoff: float = 0.5,
        lock_timeout: Optional[float] = 60.0,
    ):
        self.session = session or WalletSession()
        self.dispatcher = OperationDispatcher(
            self.session,
            key_provider,
            chain_client,
            timeout=collaborator_timeout,
            read_retry_attempts=read_retry_attempts,
            read_retry_backoff=read_retry_backoff,
        )
        self.lock_timeout = lock_timeout
        self._lock = asyncio.Lock()

    async def execute(
        self, request: Union[OperationRequest, Mapping[str, Any]]
    ) -> OperationResult:
        """Validate and run one request against the session."""
        try:
            if not isinstance(request, OperationRequest):
                request = OperationRequest.from_payload(request)
        except WalletError as e:
            logger.info("Rejected malformed request: %s", e)
            return Failure(e)

        description = describe_request(request)
        logger.info("Operation requested: %s", description)

        try:
            async with SessionLock(self._lock, self.lock_timeout, operation=request.operation):
                command = validate(self.session, request)
                try:
                    payload = await self.dispatcher.dispatch(command)
                finally:
                    command.wipe()
        except LockTimeoutError:
            error = InvalidStateError("session busy: another operation is still running")
            return Failure(error)
        except WalletError as e:
            if e.is_validation_error:
                logger.info("Operation rejected (%s): %s", description, e)
            else:
                logger.warning("Operation failed (%s): %s", description, e)
            return Failure(e)
        except Exception as e:
            logger.exception(f"Unexpected error during {request.operation}")
            return Failure(UnexpectedError(str(e) or e.__class__.__name__))

        logger.info("Operation succeeded: %s", description)
        return Success(payload)

    async def handle(self, payload: Mapping[str, Any]) -> OperationResponse:
        """Execute and convert to the wire response."""
        result = await self.execute(payload)
        return result.to_response()

    def snapshot(self) -> dict:
        return self.session.snapshot()

    async def close(self) -> None:
        """End the session: wipe secrets and drop identity and connection."""
        async with SessionLock(self._lock, self.lock_timeout, operation="close"):
            self.session.clear_identity()
        logger.info("Wallet session closed")


def create_wallet_service(
    settings: Optional[Settings] = None,
    key_provider: Optional[KeyProvider] = None,
    chain_client: Optional[ChainClient] = None,
) -> WalletService:
    """Build a service wired from settings."""
    settings = settings or get_settings()
    key_provider = key_provider or LocalKeyProvider(
        keystore_kdf=settings.keystore_kdf,
        keystore_iterations=settings.keystore_iterations,
    )
    chain_client = chain_client or get_chain_client(settings)

    return WalletService(
        key_provider=key_provider,
        chain_client=chain_client,
        session=WalletSession(active_chain_id=settings.default_chain_id),
        collaborator_timeout=settings.collaborator_timeout,
        read_retry_attempts=settings.read_retry_attempts,
        read_retry_backoff=settings.read_retry_backoff,
        lock_timeout=settings.session_lock_timeout,
    )
