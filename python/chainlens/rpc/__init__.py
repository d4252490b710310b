"""Node access over JSON-RPC."""

from chainlens.rpc.client import RpcClient
from chainlens.rpc.node import NodeApi

__all__ = ["RpcClient", "NodeApi"]
