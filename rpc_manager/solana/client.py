"""Typed Solana JSON-RPC methods on top of the endpoint manager.

Every method goes through ``RpcEndpointManager.execute`` and therefore gets
retry, failover, and health bookkeeping. Results are returned as decoded JSON
except where a small model makes the shape explicit.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from rpc_manager.models.rpc import RpcRequest

if TYPE_CHECKING:
    from rpc_manager.manager import RpcEndpointManager

TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
DEFAULT_COMMITMENT = "confirmed"


class LatestBlockhash(BaseModel):
    blockhash: str
    last_valid_block_height: int


class SolanaRpcClient:
    """Solana RPC methods used by the wallet's use-cases."""

    def __init__(self, manager: RpcEndpointManager, *, commitment: str = DEFAULT_COMMITMENT) -> None:
        self._manager = manager
        self._commitment = commitment

    async def _call(self, method: str, *params: Any) -> Any:
        response = await self._manager.execute(RpcRequest(method=method, params=params))
        return response.result

    async def get_health(self) -> str:
        return await self._call("getHealth")

    async def get_block_height(self) -> int:
        return int(await self._call("getBlockHeight", {"commitment": self._commitment}))

    async def get_balance(self, address: str) -> int:
        """Balance of *address* in lamports."""
        result = await self._call("getBalance", address, {"commitment": self._commitment})
        return int(result["value"])

    async def get_token_accounts_by_owner(
        self,
        owner: str,
        *,
        program_id: str = TOKEN_PROGRAM_ID,
    ) -> list[dict]:
        result = await self._call(
            "getTokenAccountsByOwner",
            owner,
            {"programId": program_id},
            {"encoding": "jsonParsed", "commitment": self._commitment},
        )
        return list(result["value"])

    async def get_transaction(self, signature: str) -> dict | None:
        return await self._call(
            "getTransaction",
            signature,
            {
                "encoding": "json",
                "commitment": self._commitment,
                "maxSupportedTransactionVersion": 0,
            },
        )

    async def send_transaction(self, signed_transaction: str) -> str:
        """Submit a base64-encoded signed transaction; returns its signature."""
        return await self._call(
            "sendTransaction",
            signed_transaction,
            {"encoding": "base64", "preflightCommitment": self._commitment},
        )

    async def simulate_transaction(self, transaction: str) -> dict:
        result = await self._call(
            "simulateTransaction",
            transaction,
            {"encoding": "base64", "commitment": self._commitment},
        )
        return result["value"]

    async def get_latest_blockhash(self) -> LatestBlockhash:
        result = await self._call("getLatestBlockhash", {"commitment": self._commitment})
        value = result["value"]
        return LatestBlockhash(
            blockhash=value["blockhash"],
            last_valid_block_height=value["lastValidBlockHeight"],
        )

    async def get_signature_statuses(self, signatures: list[str]) -> list[dict | None]:
        result = await self._call(
            "getSignatureStatuses",
            signatures,
            {"searchTransactionHistory": True},
        )
        return list(result["value"])

    async def get_signatures_for_address(
        self,
        address: str,
        *,
        limit: int = 50,
        before: str | None = None,
        until: str | None = None,
    ) -> list[dict]:
        options: dict[str, Any] = {"limit": limit, "commitment": self._commitment}
        if before is not None:
            options["before"] = before
        if until is not None:
            options["until"] = until
        return list(await self._call("getSignaturesForAddress", address, options))
