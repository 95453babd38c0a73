"""
Soroban RPC node client.

`NodeClient` is the capability the pipeline stages depend on; `SorobanRpc`
implements it over `RpcClient` (JSON-RPC 2.0 / HTTP). Tests substitute any
object with the same methods.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Protocol

from ..config import PipelineConfig
from ..errors import RpcError
from ..tx.encode import to_wire
from ..tx.envelope import Transaction, TransactionEnvelope
from .http import RpcClient
from .types import (
    GetTransactionResponse,
    LatestLedger,
    NetworkInfo,
    SendTransactionResponse,
    SimulationResult,
)

log = logging.getLogger(__name__)


class NodeClient(Protocol):
    """Minimal node surface used by the pipeline stages."""

    def simulate_transaction(self, tx: Transaction, *, timeout: Optional[float] = None) -> SimulationResult: ...

    def send_transaction(
        self, envelope: TransactionEnvelope, *, timeout: Optional[float] = None
    ) -> SendTransactionResponse: ...

    def get_transaction(self, tx_hash: str, *, timeout: Optional[float] = None) -> GetTransactionResponse: ...

    def get_latest_ledger(self, *, timeout: Optional[float] = None) -> LatestLedger: ...


def _expect_mapping(method: str, result: Any) -> Mapping[str, Any]:
    if not isinstance(result, Mapping):
        raise RpcError(method=method, code=-32603, message="unexpected result shape", data=result)
    return result


class SorobanRpc:
    """Typed wrapper over the Soroban RPC JSON-RPC methods."""

    def __init__(self, rpc: RpcClient) -> None:
        self.rpc = rpc

    @classmethod
    def from_config(cls, config: PipelineConfig) -> "SorobanRpc":
        return cls(
            RpcClient(
                config.rpc_url,
                timeout=config.request_timeout,
                max_retries=config.max_retries,
                backoff_factor=1.0 + config.backoff_factor,
                headers=config.http_headers(),
            )
        )

    def close(self) -> None:
        self.rpc.close()

    def __enter__(self) -> "SorobanRpc":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        self.close()

    def _call(self, method: str, params: Optional[Mapping[str, Any]], timeout: Optional[float]) -> Mapping[str, Any]:
        log.debug("rpc %s", method)
        return _expect_mapping(method, self.rpc.request(method, params, timeout=timeout))

    def simulate_transaction(self, tx: Transaction, *, timeout: Optional[float] = None) -> SimulationResult:
        res = self._call("simulateTransaction", {"transaction": to_wire(TransactionEnvelope(tx=tx))}, timeout)
        return SimulationResult.from_rpc_dict(res)

    def send_transaction(
        self, envelope: TransactionEnvelope, *, timeout: Optional[float] = None
    ) -> SendTransactionResponse:
        res = self._call("sendTransaction", {"transaction": to_wire(envelope)}, timeout)
        return SendTransactionResponse.from_rpc_dict(res)

    def get_transaction(self, tx_hash: str, *, timeout: Optional[float] = None) -> GetTransactionResponse:
        res = self._call("getTransaction", {"hash": tx_hash}, timeout)
        return GetTransactionResponse.from_rpc_dict(res)

    def get_latest_ledger(self, *, timeout: Optional[float] = None) -> LatestLedger:
        return LatestLedger.from_rpc_dict(self._call("getLatestLedger", None, timeout))

    def get_network(self, *, timeout: Optional[float] = None) -> NetworkInfo:
        return NetworkInfo.from_rpc_dict(self._call("getNetwork", None, timeout))

    def verify_network_passphrase(self, expected: str, *, timeout: Optional[float] = None) -> NetworkInfo:
        """Fail early when the node serves a different network than configured."""
        info = self.get_network(timeout=timeout)
        if info.passphrase != expected:
            raise ValueError(
                f"network passphrase mismatch: node serves {info.passphrase!r}, expected {expected!r}"
            )
        return info


__all__ = ["NodeClient", "SorobanRpc"]
