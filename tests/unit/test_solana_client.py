"""Unit tests for the typed Solana RPC client."""

from unittest.mock import AsyncMock

import pytest

from rpc_manager.models.rpc import RpcRequest, RpcResponse
from rpc_manager.solana.client import TOKEN_PROGRAM_ID, LatestBlockhash, SolanaRpcClient


def _client(result) -> tuple[SolanaRpcClient, AsyncMock]:
    manager = AsyncMock()
    manager.execute.return_value = RpcResponse(
        result=result, endpoint_url="https://rpc.example", latency_ms=12.0
    )
    return SolanaRpcClient(manager), manager


def _sent(manager: AsyncMock) -> RpcRequest:
    return manager.execute.await_args.args[0]


class TestSolanaRpcClient:
    """Test request shapes and result parsing."""

    @pytest.mark.asyncio
    async def test_get_health(self):
        client, manager = _client("ok")
        assert await client.get_health() == "ok"
        assert _sent(manager).method == "getHealth"

    @pytest.mark.asyncio
    async def test_get_block_height(self):
        client, manager = _client(250_000_000)
        assert await client.get_block_height() == 250_000_000
        assert _sent(manager).params == ({"commitment": "confirmed"},)

    @pytest.mark.asyncio
    async def test_get_balance(self):
        client, manager = _client({"context": {"slot": 1}, "value": 5_000_000})
        assert await client.get_balance("Addr1") == 5_000_000
        assert _sent(manager).params[0] == "Addr1"

    @pytest.mark.asyncio
    async def test_get_token_accounts_by_owner(self):
        client, manager = _client({"value": [{"pubkey": "Tok1"}]})
        accounts = await client.get_token_accounts_by_owner("Owner1")
        assert accounts == [{"pubkey": "Tok1"}]
        request = _sent(manager)
        assert request.method == "getTokenAccountsByOwner"
        assert request.params[1] == {"programId": TOKEN_PROGRAM_ID}
        assert request.params[2]["encoding"] == "jsonParsed"

    @pytest.mark.asyncio
    async def test_get_transaction_not_found(self):
        client, manager = _client(None)
        assert await client.get_transaction("Sig1") is None
        assert _sent(manager).params[1]["maxSupportedTransactionVersion"] == 0

    @pytest.mark.asyncio
    async def test_send_transaction(self):
        client, manager = _client("Sig1")
        assert await client.send_transaction("AQID") == "Sig1"
        assert _sent(manager).params == ("AQID", {"encoding": "base64", "preflightCommitment": "confirmed"})

    @pytest.mark.asyncio
    async def test_simulate_transaction(self):
        client, _ = _client({"value": {"err": None, "logs": []}})
        assert await client.simulate_transaction("AQID") == {"err": None, "logs": []}

    @pytest.mark.asyncio
    async def test_get_latest_blockhash(self):
        client, _ = _client({"value": {"blockhash": "Hash1", "lastValidBlockHeight": 99}})
        assert await client.get_latest_blockhash() == LatestBlockhash(
            blockhash="Hash1", last_valid_block_height=99
        )

    @pytest.mark.asyncio
    async def test_get_signature_statuses(self):
        client, manager = _client({"value": [None, {"confirmationStatus": "finalized"}]})
        statuses = await client.get_signature_statuses(["A", "B"])
        assert statuses[0] is None
        assert _sent(manager).params[1] == {"searchTransactionHistory": True}

    @pytest.mark.asyncio
    async def test_get_signatures_for_address_options(self):
        client, manager = _client([{"signature": "S"}])
        await client.get_signatures_for_address("Addr1", limit=10, before="B")
        options = _sent(manager).params[1]
        assert options == {"limit": 10, "commitment": "confirmed", "before": "B"}

    @pytest.mark.asyncio
    async def test_custom_commitment_through_manager(self, manager_factory):
        manager, transport = manager_factory(["https://rpc.example"])
        seen = []

        def handler(request):
            seen.append(request.params[-1]["commitment"])
            return 42

        transport.set_handler("https://rpc.example", handler)
        client = SolanaRpcClient(manager, commitment="finalized")
        assert await client.get_block_height() == 42
        assert seen == ["finalized"]
