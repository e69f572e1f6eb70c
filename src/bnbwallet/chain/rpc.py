"""JSON-RPC Chain Client for BNB Chain.

Talks to a node over HTTP with httpx and uses web3.py only to encode
BEP20 calldata. Read calls surface transport problems as
``TransientChainError`` so the dispatcher can retry them; broadcast
distinguishes "node said no" from "we don't know whether it landed".
"""

import logging
from decimal import Decimal
from typing import Any, Optional

import httpx
from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from eth_utils import to_bytes
from web3 import Web3

from bnbwallet.chain.base import (
    ChainClient,
    ChainClientError,
    TokenBalance,
    TransientChainError,
)
from bnbwallet.errors import BroadcastError, InsufficientFundsError, InvalidFormatError

logger = logging.getLogger(__name__)

# Minimal BEP20 (ERC-20) ABI
BEP20_ABI = [
    {
        "constant": True,
        "inputs": [{"name": "_owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "balance", "type": "uint256"}],
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [],
        "name": "decimals",
        "outputs": [{"name": "", "type": "uint8"}],
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [],
        "name": "symbol",
        "outputs": [{"name": "", "type": "string"}],
        "type": "function",
    },
    {
        "constant": False,
        "inputs": [
            {"name": "_to", "type": "address"},
            {"name": "_value", "type": "uint256"},
        ],
        "name": "transfer",
        "outputs": [{"name": "", "type": "bool"}],
        "type": "function",
    },
]


def to_base_units(amount: Decimal, decimals: int, field: str = "amount") -> int:
    """Convert whole units to integer base units, rejecting excess precision."""
    scaled = amount.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise InvalidFormatError(field, f"more than {decimals} decimal places")
    return int(scaled)


class RpcChainClient(ChainClient):
    """BNB Chain client over raw JSON-RPC."""

    def __init__(
        self,
        rpc_urls: dict[int, str],
        timeout: float = 30.0,
        native_transfer_gas: int = 21000,
        token_transfer_gas: int = 100000,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize client.

        Args:
            rpc_urls: RPC endpoint per chain ID
            timeout: HTTP timeout in seconds
            native_transfer_gas: Gas limit for BNB transfers
            token_transfer_gas: Gas limit for BEP20 transfers
            transport: Optional httpx transport (tests)
        """
        self.rpc_urls = dict(rpc_urls)
        self.timeout = timeout
        self.native_transfer_gas = native_transfer_gas
        self.token_transfer_gas = token_transfer_gas
        self._transport = transport
        self._web3: Optional[Web3] = None
        self._request_id = 0

    @property
    def web3(self) -> Web3:
        """Lazy web3 instance used only for ABI encoding."""
        if self._web3 is None:
            self._web3 = Web3()
        return self._web3

    def _contract(self, token_address: str):
        return self.web3.eth.contract(
            address=Web3.to_checksum_address(token_address),
            abi=BEP20_ABI,
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    def _payload(self, method: str, params: list) -> dict:
        self._request_id += 1
        return {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": self._request_id,
        }

    def _url(self, chain_id: int) -> str:
        url = self.rpc_urls.get(chain_id)
        if not url:
            raise ChainClientError(f"No RPC endpoint configured for chain {chain_id}")
        return url

    async def _rpc(self, chain_id: int, method: str, params: list) -> Any:
        """Send one JSON-RPC request and return ``result``."""
        url = self._url(chain_id)
        try:
            async with self._client() as client:
                response = await client.post(url, json=self._payload(method, params))
        except httpx.TransportError as e:
            raise TransientChainError(f"{method} failed: {e.__class__.__name__}") from e

        if response.status_code >= 500 or response.status_code == 429:
            raise TransientChainError(f"{method} failed: HTTP {response.status_code}")
        if response.status_code != 200:
            raise ChainClientError(f"{method} failed: HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError:
            raise ChainClientError(f"{method} failed: response is not JSON") from None
        if not isinstance(data, dict):
            raise ChainClientError(f"{method} failed: malformed JSON-RPC response")
        if "error" in data:
            error = data["error"] or {}
            raise ChainClientError(f"{method} error: {error.get('message', error)}")
        return data.get("result")

    async def _eth_call(self, chain_id: int, to: str, data: str) -> bytes:
        result = await self._rpc(chain_id, "eth_call", [{"to": to, "data": data}, "latest"])
        return to_bytes(hexstr=result or "0x")

    async def list_supported_chains(self) -> set[int]:
        return set(self.rpc_urls)

    async def is_reachable(self, chain_id: int) -> bool:
        if chain_id not in self.rpc_urls:
            return False
        try:
            result = await self._rpc(chain_id, "eth_chainId", [])
        except ChainClientError as e:
            logger.warning(f"Chain {chain_id} unreachable: {e}")
            return False

        try:
            reported = int(result, 16)
        except (TypeError, ValueError):
            logger.warning("Chain %d endpoint returned no usable chain id: %r", chain_id, result)
            return False

        if reported != chain_id:
            logger.warning("Endpoint for chain %d reports chain %d", chain_id, reported)
            return False
        return True

    async def get_native_balance(self, address: str, chain_id: int) -> Decimal:
        result = await self._rpc(chain_id, "eth_getBalance", [address, "latest"])
        wei = int(result, 16)
        return Decimal(wei) / Decimal(10**18)

    async def _token_decimals(self, token_address: str, chain_id: int) -> int:
        contract = self._contract(token_address)
        raw = await self._eth_call(chain_id, contract.address, contract.encode_abi("decimals"))
        try:
            (decimals,) = abi_decode(["uint8"], raw)
        except DecodingError as e:
            raise ChainClientError(f"{token_address} is not a BEP20 token: {e}") from None
        return decimals

    async def _token_symbol(self, token_address: str, chain_id: int) -> str:
        contract = self._contract(token_address)
        raw = await self._eth_call(chain_id, contract.address, contract.encode_abi("symbol"))
        try:
            (symbol,) = abi_decode(["string"], raw)
            return symbol
        except DecodingError:
            # Older tokens return bytes32
            return raw[:32].rstrip(b"\x00").decode("utf-8", errors="replace") or "UNKNOWN"

    async def get_token_balance(
        self, address: str, token_address: str, chain_id: int
    ) -> TokenBalance:
        contract = self._contract(token_address)
        raw = await self._eth_call(
            chain_id,
            contract.address,
            contract.encode_abi("balanceOf", args=[Web3.to_checksum_address(address)]),
        )
        try:
            (units,) = abi_decode(["uint256"], raw)
        except DecodingError as e:
            raise ChainClientError(f"{token_address} is not a BEP20 token: {e}") from None

        decimals = await self._token_decimals(token_address, chain_id)
        symbol = await self._token_symbol(token_address, chain_id)
        return TokenBalance(
            balance=Decimal(units).scaleb(-decimals),
            symbol=symbol,
            decimals=decimals,
        )

    async def build_transfer(
        self,
        sender: str,
        recipient: str,
        amount: Decimal,
        chain_id: int,
        token_address: Optional[str] = None,
    ) -> dict[str, Any]:
        nonce = int(await self._rpc(chain_id, "eth_getTransactionCount", [sender, "pending"]), 16)
        gas_price = int(await self._rpc(chain_id, "eth_gasPrice", []), 16)

        if token_address is None:
            return {
                "nonce": nonce,
                "gasPrice": gas_price,
                "gas": self.native_transfer_gas,
                "to": Web3.to_checksum_address(recipient),
                "value": to_base_units(amount, 18),
                "data": "0x",
                "chainId": chain_id,
            }

        decimals = await self._token_decimals(token_address, chain_id)
        contract = self._contract(token_address)
        data = contract.encode_abi(
            "transfer",
            args=[Web3.to_checksum_address(recipient), to_base_units(amount, decimals)],
        )
        return {
            "nonce": nonce,
            "gasPrice": gas_price,
            "gas": self.token_transfer_gas,
            "to": contract.address,
            "value": 0,
            "data": data,
            "chainId": chain_id,
        }

    async def broadcast(self, signed_tx: bytes, chain_id: int) -> str:
        url = self._url(chain_id)
        payload = self._payload("eth_sendRawTransaction", ["0x" + signed_tx.hex()])

        try:
            async with self._client() as client:
                response = await client.post(url, json=payload)
        except (httpx.ConnectError, httpx.ConnectTimeout) as e:
            # Never left this process
            raise BroadcastError(f"could not reach node: {e.__class__.__name__}") from e
        except httpx.TransportError as e:
            raise BroadcastError(
                f"connection lost after sending transaction ({e.__class__.__name__})",
                outcome_unknown=True,
            ) from e

        if response.status_code != 200:
            raise BroadcastError(
                f"node answered HTTP {response.status_code}",
                outcome_unknown=response.status_code >= 500,
            )

        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            raise BroadcastError("node answered with a malformed response", outcome_unknown=True)
        if "error" in data:
            message = str((data["error"] or {}).get("message", data["error"]))
            logger.error(f"Broadcast error: {message}")
            if "insufficient funds" in message.lower():
                raise InsufficientFundsError(f"node rejected transaction: {message}")
            raise BroadcastError(f"node rejected transaction: {message}")

        tx_hash = data.get("result")
        if not tx_hash:
            raise BroadcastError("node returned no transaction hash", outcome_unknown=True)
        return tx_hash
