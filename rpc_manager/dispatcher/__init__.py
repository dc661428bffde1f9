"""RPC request dispatch with retry and failover."""

from rpc_manager.dispatcher.dispatcher import RequestDispatcher

__all__ = ["RequestDispatcher"]
