"""Tests for chain registry, settings and client factory."""

from decimal import Decimal

import pytest
from eth_account import Account

from bnbwallet.chain.factory import get_chain_client
from bnbwallet.chain.rpc import RpcChainClient
from bnbwallet.chain.simulated import SimulatedChainClient
from bnbwallet.chains import chain_name, get_chain, tx_url
from bnbwallet.config import Settings
from bnbwallet.errors import BroadcastError, InsufficientFundsError

RECIPIENT = "0x" + "2" * 40


def _sign(tx: dict, key: str) -> bytes:
    return bytes(Account.sign_transaction(tx, key).raw_transaction)


class TestChains:
    """Tests for the chain registry helpers."""

    def test_known_chains(self):
        assert get_chain(56).symbol == "BNB"
        assert get_chain(97).is_testnet
        assert chain_name(97) == "BNB Chain Testnet"

    def test_unknown_chain(self):
        assert get_chain(1) is None
        assert chain_name(1) == "Chain 1"
        assert tx_url(1, "0xabc") is None

    def test_tx_url(self):
        assert tx_url(97, "0xabc") == "https://testnet.bscscan.com/tx/0xabc"


class TestFactory:
    """Tests for chain client selection."""

    def test_dry_run(self):
        assert isinstance(get_chain_client(Settings(dry_run=True)), SimulatedChainClient)

    def test_rpc(self):
        settings = Settings(dry_run=False, bsc_rpc_url="https://node.test", token_transfer_gas=80000)

        client = get_chain_client(settings)

        assert isinstance(client, RpcChainClient)
        assert client.rpc_urls[56] == "https://node.test"
        assert client.token_transfer_gas == 80000


class TestSimulatedChainClient:
    """Tests for the in-memory chain client."""

    @pytest.mark.asyncio
    async def test_balances_are_case_insensitive(self):
        client = SimulatedChainClient()
        address = "0x" + "Ab" * 20

        client.credit(address, Decimal("2"), 56)

        assert await client.get_native_balance(address.lower(), 56) == Decimal("2")
        assert await client.get_native_balance(address, 97) == Decimal("0")

    @pytest.mark.asyncio
    async def test_nonce_advances_only_on_broadcast(self):
        client = SimulatedChainClient()
        key = "0x" + "33" * 32
        sender = Account.from_key(key).address
        client.credit(sender, Decimal("5"), 56)

        first = await client.build_transfer(sender, RECIPIENT, Decimal("1"), 56)
        rebuilt = await client.build_transfer(sender, RECIPIENT, Decimal("1"), 56)
        await client.broadcast(_sign(rebuilt, key), 56)
        after = await client.build_transfer(sender, RECIPIENT, Decimal("1"), 56)

        assert (first["nonce"], rebuilt["nonce"], after["nonce"]) == (0, 0, 1)

    @pytest.mark.asyncio
    async def test_broadcast_records_transaction(self):
        client = SimulatedChainClient()
        key = "0x" + "33" * 32
        sender = Account.from_key(key).address
        client.credit(sender, Decimal("1"), 97)
        tx = await client.build_transfer(sender, RECIPIENT, Decimal("0.1"), 97)

        tx_hash = await client.broadcast(_sign(tx, key), 97)

        assert tx_hash.startswith("0x") and len(tx_hash) == 66
        assert client.broadcasts[0].chain_id == 97
        assert client.broadcasts[0].tx_hash == tx_hash

    @pytest.mark.asyncio
    async def test_broadcast_moves_native_funds(self):
        """Test a broadcast debits the sender and credits the recipient."""
        client = SimulatedChainClient()
        key = "0x" + "33" * 32
        sender = Account.from_key(key).address
        client.credit(sender, Decimal("1"), 56)

        tx = await client.build_transfer(sender, RECIPIENT, Decimal("0.4"), 56)
        await client.broadcast(_sign(tx, key), 56)

        assert await client.get_native_balance(sender, 56) == Decimal("0.6")
        assert await client.get_native_balance(RECIPIENT, 56) == Decimal("0.4")

    @pytest.mark.asyncio
    async def test_broadcast_moves_token_funds(self):
        client = SimulatedChainClient()
        key = "0x" + "33" * 32
        sender = Account.from_key(key).address
        token = "0x" + "a" * 40
        client.credit_token(sender, token, Decimal("10"), 56, symbol="CAKE")

        tx = await client.build_transfer(sender, RECIPIENT, Decimal("2.5"), 56, token_address=token)
        await client.broadcast(_sign(tx, key), 56)

        assert (await client.get_token_balance(sender, token, 56)).balance == Decimal("7.5")
        assert (await client.get_token_balance(RECIPIENT, token, 56)).balance == Decimal("2.5")
        assert await client.get_native_balance(sender, 56) == Decimal("0")

    @pytest.mark.asyncio
    async def test_same_funds_cannot_be_spent_twice(self):
        client = SimulatedChainClient()
        key = "0x" + "33" * 32
        sender = Account.from_key(key).address
        client.credit(sender, Decimal("1"), 56)

        tx = await client.build_transfer(sender, RECIPIENT, Decimal("0.6"), 56)
        await client.broadcast(_sign(tx, key), 56)
        tx = await client.build_transfer(sender, RECIPIENT, Decimal("0.6"), 56)

        with pytest.raises(InsufficientFundsError):
            await client.broadcast(_sign(tx, key), 56)

        assert await client.get_native_balance(sender, 56) == Decimal("0.4")
        assert len(client.broadcasts) == 1

    @pytest.mark.asyncio
    async def test_garbage_broadcast_is_rejected(self):
        client = SimulatedChainClient()

        with pytest.raises(BroadcastError) as exc_info:
            await client.broadcast(b"\x01\x02", 56)

        assert not exc_info.value.outcome_unknown
        assert client.broadcasts == []

    @pytest.mark.asyncio
    async def test_unreachable_chain(self):
        client = SimulatedChainClient(unreachable_chains={97})

        assert await client.is_reachable(56)
        assert not await client.is_reachable(97)
        assert not await client.is_reachable(1)
