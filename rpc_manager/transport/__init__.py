"""JSON-RPC transport over HTTP."""

from rpc_manager.transport.client import JsonRpcTransport, RpcTransport, redact_url

__all__ = ["JsonRpcTransport", "RpcTransport", "redact_url"]
