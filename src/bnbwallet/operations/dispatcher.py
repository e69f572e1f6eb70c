"""Operation dispatcher.

Executes a validated command against the Key Provider and Chain Client,
then updates the wallet session. Session mutators are only called after
every collaborator call for the operation has succeeded, so a failure at
any step leaves the session exactly as it was.

Retry policy:
- getBalance / getTokenBalance: retried on transient chain errors and
  timeouts, up to ``read_retry_attempts``
- everything else: never retried; a timeout or cancellation that races a
  broadcast is reported as "unknown outcome"
"""

import asyncio
import logging
from decimal import Decimal
from typing import Any, Awaitable, Callable, Optional, TypeVar

from bnbwallet.chain.base import ChainClient, TransientChainError
from bnbwallet.chains import NATIVE_UNIT, chain_name, tx_url
from bnbwallet.contracts.operations import ExportFormat, OperationKind
from bnbwallet.contracts.results import (
    BalanceResult,
    ConnectResult,
    ExportResult,
    ResultPayload,
    SwitchChainResult,
    TokenBalanceResult,
    TokenTransferResult,
    TransferResult,
    WalletCreatedResult,
    WalletImportedResult,
    format_amount,
)
from bnbwallet.errors import (
    BroadcastError,
    CollaboratorTimeoutError,
    ConnectionFailedError,
    InsufficientFundsError,
    InvalidFormatError,
    InvalidStateError,
    UnexpectedError,
    UnsupportedExportError,
    WalletError,
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
from bnbwallet.secret import Keyring, SensitiveValue
from bnbwallet.session import ImportSource, WalletIdentity, WalletSession
from bnbwallet.signing.base import KeyProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")


class OperationDispatcher:
    """Performs the side effect of each command."""

    def __init__(
        self,
        session: WalletSession,
        key_provider: KeyProvider,
        chain_client: ChainClient,
        timeout: float = 45.0,
        read_retry_attempts: int = 3,
        read_retry_backoff: float = 0.5,
    ):
        """Initialize dispatcher.

        Args:
            session: Session to update on success
            key_provider: Key derivation / signing collaborator
            chain_client: Chain read / broadcast collaborator
            timeout: Per-call collaborator timeout in seconds
            read_retry_attempts: Attempts for read-only balance queries
            read_retry_backoff: Base delay between read attempts
        """
        self.session = session
        self.key_provider = key_provider
        self.chain_client = chain_client
        self.timeout = timeout
        self.read_retry_attempts = max(1, read_retry_attempts)
        self.read_retry_backoff = read_retry_backoff

        self._handlers: dict[OperationKind, Callable[[Any], Awaitable[ResultPayload]]] = {
            OperationKind.CREATE_WALLET: self._create_wallet,
            OperationKind.IMPORT_FROM_MNEMONIC: self._import_from_mnemonic,
            OperationKind.IMPORT_FROM_KEYSTORE: self._import_from_keystore,
            OperationKind.IMPORT_FROM_PRIVATE_KEY: self._import_from_private_key,
            OperationKind.CONNECT_WALLET: self._connect_wallet,
            OperationKind.EXPORT_WALLET: self._export_wallet,
            OperationKind.GET_BALANCE: self._get_balance,
            OperationKind.SEND_BNB: self._send_bnb,
            OperationKind.GET_TOKEN_BALANCE: self._get_token_balance,
            OperationKind.SEND_TOKEN: self._send_token,
            OperationKind.SWITCH_CHAIN: self._switch_chain,
        }
        unhandled = set(OperationKind) - set(self._handlers)
        if unhandled:
            raise RuntimeError(f"No handler for: {sorted(k.value for k in unhandled)}")

    async def dispatch(self, command: Command) -> ResultPayload:
        """Run ``command`` and return its typed payload.

        Raises:
            WalletError: Any dispatcher-level failure; session unchanged
        """
        handler = self._handlers[command.kind]
        return await handler(command)

    # ======================
    # Collaborator plumbing
    # ======================

    def _log_security_event(self, event: str, address: str) -> None:
        logger.info(
            "WALLET_SECURITY: %s | Address: %s",
            event,
            address[:10] + "..." if len(address) > 10 else address,
        )

    async def _call(self, awaitable: Awaitable[T], what: str, retryable: bool = False) -> T:
        """Await a collaborator call with the dispatcher timeout."""
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except asyncio.TimeoutError:
            raise CollaboratorTimeoutError(
                f"{what} did not answer within {self.timeout}s"
            ) from None
        except WalletError:
            raise
        except TransientChainError as e:
            if retryable:
                raise
            raise UnexpectedError(f"{what} failed: {e}") from e
        except Exception as e:
            logger.error(f"{what} failed: {e}")
            raise UnexpectedError(f"{what} failed: {e}") from e

    async def _read(self, call: Callable[[], Awaitable[T]], what: str) -> T:
        """Read-only collaborator call with bounded retries."""
        for attempt in range(1, self.read_retry_attempts + 1):
            try:
                return await self._call(call(), what, retryable=True)
            except (TransientChainError, CollaboratorTimeoutError) as e:
                if attempt == self.read_retry_attempts:
                    if isinstance(e, CollaboratorTimeoutError):
                        raise
                    raise UnexpectedError(
                        f"{what} failed after {attempt} attempts: {e}"
                    ) from e
                logger.warning(f"{what} failed (attempt {attempt}): {e}")
                await asyncio.sleep(self.read_retry_backoff * attempt)
        raise AssertionError("unreachable")

    async def _broadcast(self, signed_tx: bytes, chain_id: int) -> str:
        """Broadcast once. Anything but a clean rejection is outcome-unknown."""
        try:
            return await asyncio.wait_for(
                self.chain_client.broadcast(signed_tx, chain_id),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            raise CollaboratorTimeoutError(
                f"broadcast did not answer within {self.timeout}s",
                outcome_unknown=True,
            ) from None
        except asyncio.CancelledError:
            logger.warning("Request cancelled while broadcasting on chain %d", chain_id)
            raise BroadcastError(
                "request cancelled while the transaction was being broadcast",
                outcome_unknown=True,
            ) from None
        except WalletError:
            raise
        except Exception as e:
            logger.error(f"Broadcast failed: {e}")
            raise BroadcastError(f"broadcast failed: {e}", outcome_unknown=True) from e

    async def _require_supported(self, chain_id: int) -> None:
        supported = await self._call(
            self.chain_client.list_supported_chains(), "chain client supported-chain lookup"
        )
        if chain_id not in supported:
            raise InvalidFormatError("chainId", f"chain {chain_id} is not supported")

    def _require_keyring(self) -> Keyring:
        keyring = self.session.keyring
        if keyring is None or self.session.identity is None:
            raise InvalidStateError("identity required: create or import a wallet first")
        return keyring

    def _install(self, address: str, source: ImportSource, keyring: Keyring) -> None:
        self.session.set_identity(WalletIdentity(address=address, source=source), keyring)
        self._log_security_event(f"IDENTITY_SET: {source.value}", address)

    # ======================
    # Identity operations
    # ======================

    async def _create_wallet(self, command: CreateWallet) -> WalletCreatedResult:
        phrase = await self._call(self.key_provider.generate_mnemonic(), "mnemonic generation")
        derived = await self._call(
            self.key_provider.derive_from_mnemonic(phrase), "key derivation from mnemonic"
        )
        keyring = Keyring(
            private_key=SensitiveValue(derived.private_key),
            mnemonic=SensitiveValue(phrase),
        )
        self._install(derived.address, ImportSource.MNEMONIC, keyring)
        return WalletCreatedResult(address=derived.address)

    async def _import_from_mnemonic(self, command: ImportFromMnemonic) -> WalletImportedResult:
        phrase = command.secret.phrase.reveal()
        derived = await self._call(
            self.key_provider.derive_from_mnemonic(phrase), "key derivation from mnemonic"
        )
        keyring = Keyring(
            private_key=SensitiveValue(derived.private_key),
            mnemonic=SensitiveValue(phrase),
        )
        self._install(derived.address, ImportSource.MNEMONIC, keyring)
        return WalletImportedResult(
            address=derived.address,
            source=ImportSource.MNEMONIC.value,
            message="Wallet imported successfully from mnemonic",
        )

    async def _import_from_keystore(self, command: ImportFromKeystore) -> WalletImportedResult:
        derived = await self._call(
            self.key_provider.decrypt_keystore(
                command.secret.keystore_json.reveal(),
                command.secret.password.reveal(),
            ),
            "keystore decryption",
        )
        self._install(
            derived.address,
            ImportSource.KEYSTORE,
            Keyring(private_key=SensitiveValue(derived.private_key)),
        )
        return WalletImportedResult(
            address=derived.address,
            source=ImportSource.KEYSTORE.value,
            message="Wallet imported successfully from keystore",
        )

    async def _import_from_private_key(self, command: ImportFromPrivateKey) -> WalletImportedResult:
        private_key = command.secret.key.reveal()
        address = await self._call(
            self.key_provider.derive_from_private_key(private_key), "address derivation"
        )
        self._install(
            address,
            ImportSource.PRIVATE_KEY,
            Keyring(private_key=SensitiveValue(private_key)),
        )
        return WalletImportedResult(
            address=address,
            source=ImportSource.PRIVATE_KEY.value,
            message="Wallet imported successfully from private key",
        )

    async def _export_wallet(self, command: ExportWallet) -> ExportResult:
        keyring = self._require_keyring()
        source = self.session.identity.source

        if command.export_format is ExportFormat.MNEMONIC:
            if not keyring.has_mnemonic:
                raise UnsupportedExportError(
                    f"wallet was imported from {source.value} and has no mnemonic to export"
                )
            result = ExportResult(
                format=command.export_format.value,
                mnemonic=keyring.mnemonic.reveal(),
                message="Wallet exported as mnemonic",
            )
        elif command.export_format is ExportFormat.PRIVATE_KEY:
            result = ExportResult(
                format=command.export_format.value,
                private_key=keyring.private_key.reveal(),
                message="Wallet exported as private key",
            )
        else:
            keystore = await self._call(
                self.key_provider.encrypt_to_keystore(
                    keyring.private_key.reveal(),
                    command.password.reveal(),
                ),
                "keystore encryption",
            )
            result = ExportResult(
                format=command.export_format.value,
                keystore=keystore,
                message="Wallet exported as keystore",
            )

        self._log_security_event(f"EXPORT: {command.export_format.value}", self.session.identity.address)
        return result

    # ======================
    # Chain context
    # ======================

    async def _connect_wallet(self, command: ConnectWallet) -> ConnectResult:
        address = self.session.identity.address
        await self._require_supported(command.chain_id)

        reachable = await self._call(
            self.chain_client.is_reachable(command.chain_id), "chain reachability check"
        )
        if not reachable:
            raise ConnectionFailedError(
                f"{chain_name(command.chain_id)} (chain {command.chain_id}) is not reachable"
            )

        if command.chain_id != self.session.active_chain_id:
            self.session.set_active_chain(command.chain_id)
        connection = self.session.set_connection(command.chain_id)

        logger.info(
            "Wallet connected: %s (chain=%d)",
            address[:10] + "...",
            command.chain_id,
        )
        return ConnectResult(
            address=address,
            chain_id=command.chain_id,
            chain_name=chain_name(command.chain_id),
            connected_at=connection.connected_at.isoformat(),
        )

    async def _switch_chain(self, command: SwitchChain) -> SwitchChainResult:
        await self._require_supported(command.chain_id)
        self.session.set_active_chain(command.chain_id)

        connected = self.session.is_connected
        if self.session.connection_is_stale:
            message = (
                f"Active chain set to {command.chain_id}; "
                "call connectWallet to connect on this chain"
            )
        else:
            message = f"Switched to {chain_name(command.chain_id)}"

        logger.info("Active chain switched to %d (connected=%s)", command.chain_id, connected)
        return SwitchChainResult(
            chain_id=command.chain_id,
            name=chain_name(command.chain_id),
            connected=connected,
            message=message,
        )

    # ======================
    # Reads
    # ======================

    async def _get_balance(self, command: GetBalance) -> BalanceResult:
        address = self.session.identity.address
        chain_id = self.session.active_chain_id
        balance = await self._read(
            lambda: self.chain_client.get_native_balance(address, chain_id),
            "balance query",
        )
        return BalanceResult(
            address=address,
            balance=format_amount(balance),
            unit=NATIVE_UNIT,
            chain_id=chain_id,
        )

    async def _get_token_balance(self, command: GetTokenBalance) -> TokenBalanceResult:
        address = self.session.identity.address
        chain_id = self.session.active_chain_id
        token = await self._read(
            lambda: self.chain_client.get_token_balance(address, command.token_address, chain_id),
            "token balance query",
        )
        return TokenBalanceResult(
            address=address,
            token_address=command.token_address,
            balance=format_amount(token.balance),
            symbol=token.symbol,
            chain_id=chain_id,
        )

    # ======================
    # Transfers
    # ======================

    async def _sign_and_broadcast(
        self,
        keyring: Keyring,
        sender: str,
        recipient: str,
        amount: Decimal,
        chain_id: int,
        token_address: Optional[str] = None,
    ) -> str:
        tx_params = await self._call(
            self.chain_client.build_transfer(
                sender, recipient, amount, chain_id, token_address=token_address
            ),
            "transaction preparation",
        )
        signed_tx = await self._call(
            self.key_provider.sign(keyring.private_key.reveal(), tx_params),
            "transaction signing",
        )
        return await self._broadcast(signed_tx, chain_id)

    async def _send_bnb(self, command: SendBNB) -> TransferResult:
        keyring = self._require_keyring()
        sender = self.session.identity.address
        chain_id = self.session.active_chain_id

        balance = await self._read(
            lambda: self.chain_client.get_native_balance(sender, chain_id),
            "balance query",
        )
        if balance < command.amount:
            raise InsufficientFundsError(
                f"balance {format_amount(balance)} {NATIVE_UNIT} is less than "
                f"{format_amount(command.amount)} {NATIVE_UNIT}"
            )

        tx_hash = await self._sign_and_broadcast(
            keyring, sender, command.to_address, command.amount, chain_id
        )
        logger.info(
            "Sent %s %s to %s on chain %d: %s",
            format_amount(command.amount),
            NATIVE_UNIT,
            command.to_address[:10] + "...",
            chain_id,
            tx_hash,
        )
        return TransferResult(
            tx_hash=tx_hash,
            sender=sender,
            to=command.to_address,
            amount=format_amount(command.amount),
            unit=NATIVE_UNIT,
            chain_id=chain_id,
            explorer_url=tx_url(chain_id, tx_hash),
        )

    async def _send_token(self, command: SendToken) -> TokenTransferResult:
        keyring = self._require_keyring()
        sender = self.session.identity.address
        chain_id = self.session.active_chain_id

        token = await self._read(
            lambda: self.chain_client.get_token_balance(sender, command.token_address, chain_id),
            "token balance query",
        )
        if token.balance < command.amount:
            raise InsufficientFundsError(
                f"balance {format_amount(token.balance)} {token.symbol} is less than "
                f"{format_amount(command.amount)} {token.symbol}"
            )

        tx_hash = await self._sign_and_broadcast(
            keyring,
            sender,
            command.to_address,
            command.amount,
            chain_id,
            token_address=command.token_address,
        )
        logger.info(
            "Sent %s %s to %s on chain %d: %s",
            format_amount(command.amount),
            token.symbol,
            command.to_address[:10] + "...",
            chain_id,
            tx_hash,
        )
        return TokenTransferResult(
            tx_hash=tx_hash,
            sender=sender,
            to=command.to_address,
            token_address=command.token_address,
            amount=format_amount(command.amount),
            symbol=token.symbol,
            chain_id=chain_id,
            explorer_url=tx_url(chain_id, tx_hash),
        )
