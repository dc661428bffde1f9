"""Typed Solana JSON-RPC client."""

from rpc_manager.solana.client import LatestBlockhash, SolanaRpcClient

__all__ = ["LatestBlockhash", "SolanaRpcClient"]
