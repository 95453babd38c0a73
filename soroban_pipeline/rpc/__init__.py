"""
soroban_pipeline.rpc
====================

JSON-RPC transport (`http.RpcClient`), typed responses (`types`) and the
node client capability (`client.NodeClient`, `client.SorobanRpc`).
"""

from .client import NodeClient, SorobanRpc
from .http import RpcClient
from .types import (
    GetTransactionResponse,
    LatestLedger,
    NetworkInfo,
    RestorePreamble,
    SendTransactionResponse,
    SimulationResult,
)

__all__ = [
    "NodeClient",
    "SorobanRpc",
    "RpcClient",
    "GetTransactionResponse",
    "LatestLedger",
    "NetworkInfo",
    "RestorePreamble",
    "SendTransactionResponse",
    "SimulationResult",
]
