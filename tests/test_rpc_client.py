"""Tests for the JSON-RPC chain client against a mocked transport."""

import json
from decimal import Decimal

import httpx
import pytest
from eth_abi import encode as abi_encode

from bnbwallet.chain.base import ChainClientError, TransientChainError
from bnbwallet.chain.rpc import RpcChainClient, to_base_units
from bnbwallet.errors import BroadcastError, InsufficientFundsError, InvalidFormatError

RPC_URL = "https://rpc.test"
HOLDER = "0x2c7536E3605D9C16a7a3D7b1898e529396a65c23"
TOKEN = "0x" + "a" * 40
RECIPIENT = "0x" + "b" * 40

SELECTOR_BALANCE_OF = "0x70a08231"
SELECTOR_DECIMALS = "0x313ce567"
SELECTOR_SYMBOL = "0x95d89b41"
SELECTOR_TRANSFER = "0xa9059cbb"


def _client(handler) -> RpcChainClient:
    return RpcChainClient(
        {56: RPC_URL, 97: RPC_URL + "/testnet"},
        transport=httpx.MockTransport(handler),
    )


def _result(request: httpx.Request, result) -> httpx.Response:
    body = json.loads(request.content)
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


def _error(request: httpx.Request, message: str) -> httpx.Response:
    body = json.loads(request.content)
    return httpx.Response(
        200,
        json={"jsonrpc": "2.0", "id": body["id"], "error": {"code": -32000, "message": message}},
    )


def _token_node(units: int, decimals: int, symbol: str):
    """Handler that answers BEP20 eth_calls."""

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        method = body["method"]
        if method == "eth_call":
            data = body["params"][0]["data"]
            if data.startswith(SELECTOR_BALANCE_OF):
                encoded = abi_encode(["uint256"], [units])
            elif data.startswith(SELECTOR_DECIMALS):
                encoded = abi_encode(["uint8"], [decimals])
            elif data.startswith(SELECTOR_SYMBOL):
                encoded = abi_encode(["string"], [symbol])
            else:
                return _error(request, "execution reverted")
            return _result(request, "0x" + encoded.hex())
        if method == "eth_getTransactionCount":
            return _result(request, "0x7")
        if method == "eth_gasPrice":
            return _result(request, hex(3 * 10**9))
        return _error(request, f"unexpected method {method}")

    return handler


class TestReads:
    """Balance and reachability queries."""

    @pytest.mark.asyncio
    async def test_reachable(self):
        client = _client(lambda request: _result(request, "0x38"))

        assert await client.is_reachable(56) is True

    @pytest.mark.asyncio
    async def test_endpoint_reporting_other_chain(self):
        client = _client(lambda request: _result(request, "0x61"))

        assert await client.is_reachable(56) is False

    @pytest.mark.asyncio
    async def test_unreachable_on_server_error(self):
        client = _client(lambda request: httpx.Response(502))

        assert await client.is_reachable(56) is False

    @pytest.mark.asyncio
    async def test_missing_chain_id_result_is_unreachable(self):
        client = _client(lambda request: httpx.Response(200, json={"jsonrpc": "2.0", "id": 1}))

        assert await client.is_reachable(56) is False

    @pytest.mark.asyncio
    async def test_garbage_chain_id_result_is_unreachable(self):
        client = _client(lambda request: _result(request, "not-hex"))

        assert await client.is_reachable(56) is False

    @pytest.mark.asyncio
    async def test_non_json_body_is_unreachable(self):
        client = _client(lambda request: httpx.Response(200, text="<html>maintenance</html>"))

        assert await client.is_reachable(56) is False

    @pytest.mark.asyncio
    async def test_non_json_body_on_read(self):
        client = _client(lambda request: httpx.Response(200, text="<html>maintenance</html>"))

        with pytest.raises(ChainClientError):
            await client.get_native_balance(HOLDER, 56)

    @pytest.mark.asyncio
    async def test_unconfigured_chain(self):
        client = _client(lambda request: _result(request, "0x1"))

        assert await client.is_reachable(1) is False
        assert await client.list_supported_chains() == {56, 97}

    @pytest.mark.asyncio
    async def test_native_balance(self):
        seen = []

        def handler(request):
            body = json.loads(request.content)
            seen.append((str(request.url), body["method"], body["params"]))
            return _result(request, hex(15 * 10**17))

        client = _client(handler)

        balance = await client.get_native_balance(HOLDER, 97)

        assert balance == Decimal("1.5")
        assert seen == [(RPC_URL + "/testnet", "eth_getBalance", [HOLDER, "latest"])]

    @pytest.mark.asyncio
    async def test_server_errors_are_transient(self):
        client = _client(lambda request: httpx.Response(503))

        with pytest.raises(TransientChainError):
            await client.get_native_balance(HOLDER, 56)

    @pytest.mark.asyncio
    async def test_client_errors_are_not_transient(self):
        client = _client(lambda request: httpx.Response(400))

        with pytest.raises(ChainClientError) as exc_info:
            await client.get_native_balance(HOLDER, 56)

        assert not isinstance(exc_info.value, TransientChainError)

    @pytest.mark.asyncio
    async def test_network_errors_are_transient(self):
        def handler(request):
            raise httpx.ConnectError("refused")

        with pytest.raises(TransientChainError):
            await _client(handler).get_native_balance(HOLDER, 56)

    @pytest.mark.asyncio
    async def test_token_balance(self):
        client = _client(_token_node(units=12_340_000, decimals=6, symbol="USDT"))

        token = await client.get_token_balance(HOLDER, TOKEN, 56)

        assert token.balance == Decimal("12.34")
        assert token.symbol == "USDT"
        assert token.decimals == 6


class TestTransfers:
    """Transaction building and broadcasting."""

    @pytest.mark.asyncio
    async def test_build_native_transfer(self):
        client = _client(_token_node(0, 18, "X"))

        tx = await client.build_transfer(HOLDER, RECIPIENT, Decimal("0.5"), 56)

        assert tx["nonce"] == 7
        assert tx["gasPrice"] == 3 * 10**9
        assert tx["gas"] == 21000
        assert tx["value"] == 5 * 10**17
        assert tx["to"].lower() == RECIPIENT
        assert tx["chainId"] == 56

    @pytest.mark.asyncio
    async def test_build_token_transfer(self):
        client = _client(_token_node(0, 6, "USDT"))

        tx = await client.build_transfer(HOLDER, RECIPIENT, Decimal("2.5"), 56, token_address=TOKEN)

        assert tx["value"] == 0
        assert tx["gas"] == 100000
        assert tx["to"].lower() == TOKEN
        assert tx["data"].startswith(SELECTOR_TRANSFER)
        assert tx["data"].endswith(format(2_500_000, "x").rjust(64, "0"))

    @pytest.mark.asyncio
    async def test_token_amount_beyond_token_decimals(self):
        client = _client(_token_node(0, 2, "X"))

        with pytest.raises(InvalidFormatError):
            await client.build_transfer(HOLDER, RECIPIENT, Decimal("0.001"), 56, token_address=TOKEN)

    @pytest.mark.asyncio
    async def test_broadcast(self):
        tx_hash = "0x" + "cd" * 32
        client = _client(lambda request: _result(request, tx_hash))

        assert await client.broadcast(b"\x01\x02", 56) == tx_hash

    @pytest.mark.asyncio
    async def test_broadcast_insufficient_funds(self):
        client = _client(lambda request: _error(request, "insufficient funds for gas * price + value"))

        with pytest.raises(InsufficientFundsError):
            await client.broadcast(b"\x01", 56)

    @pytest.mark.asyncio
    async def test_broadcast_rejected(self):
        client = _client(lambda request: _error(request, "nonce too low"))

        with pytest.raises(BroadcastError) as exc_info:
            await client.broadcast(b"\x01", 56)

        assert not exc_info.value.outcome_unknown

    @pytest.mark.asyncio
    async def test_broadcast_connect_error_is_known_failure(self):
        def handler(request):
            raise httpx.ConnectError("refused")

        with pytest.raises(BroadcastError) as exc_info:
            await _client(handler).broadcast(b"\x01", 56)

        assert not exc_info.value.outcome_unknown

    @pytest.mark.asyncio
    async def test_broadcast_read_timeout_is_outcome_unknown(self):
        def handler(request):
            raise httpx.ReadTimeout("no answer")

        with pytest.raises(BroadcastError) as exc_info:
            await _client(handler).broadcast(b"\x01", 56)

        assert exc_info.value.outcome_unknown

    @pytest.mark.asyncio
    async def test_broadcast_non_json_body_is_outcome_unknown(self):
        client = _client(lambda request: httpx.Response(200, text="upstream hiccup"))

        with pytest.raises(BroadcastError) as exc_info:
            await client.broadcast(b"\x01", 56)

        assert exc_info.value.outcome_unknown

    @pytest.mark.asyncio
    async def test_broadcast_server_error_is_outcome_unknown(self):
        client = _client(lambda request: httpx.Response(502))

        with pytest.raises(BroadcastError) as exc_info:
            await client.broadcast(b"\x01", 56)

        assert exc_info.value.outcome_unknown


class TestBaseUnits:
    """Tests for to_base_units."""

    def test_conversion(self):
        assert to_base_units(Decimal("1.5"), 18) == 15 * 10**17
        assert to_base_units(Decimal("12.34"), 6) == 12_340_000

    def test_excess_precision(self):
        with pytest.raises(InvalidFormatError):
            to_base_units(Decimal("0.123"), 2)
