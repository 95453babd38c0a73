"""
Typed views of Soroban RPC responses.

RPC payloads carry 64-bit numbers as decimal strings and nested models as
wire text; the `from_rpc_dict` helpers normalize both. Diagnostic events are
kept verbatim as opaque strings and never parsed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Tuple, TypedDict

from ..tx.encode import from_wire
from ..tx.envelope import AuthorizationEntry, LedgerKey, SorobanData

# --- JSON-RPC TypedDict shapes ----------------------------------------------


class CostDict(TypedDict, total=False):
    cpuInsns: str
    memBytes: str


class HostFunctionResultDict(TypedDict, total=False):
    auth: List[str]
    xdr: str


class RestorePreambleDict(TypedDict, total=False):
    transactionData: str
    minResourceFee: str


class SimulateTransactionDict(TypedDict, total=False):
    latestLedger: int
    minResourceFee: str
    cost: CostDict
    results: List[HostFunctionResultDict]
    transactionData: str
    events: List[str]
    restorePreamble: RestorePreambleDict
    error: str


def _int(v: Any, default: int = 0) -> int:
    if v is None or v == "":
        return default
    return int(v)


def _strings(v: Any) -> Tuple[str, ...]:
    return tuple(str(x) for x in (v or ()))


# --- Simulation --------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class Cost:
    cpu_instructions: int = 0
    memory_bytes: int = 0

    @staticmethod
    def from_rpc_dict(d: Optional[Mapping[str, Any]]) -> "Cost":
        d = d or {}
        return Cost(cpu_instructions=_int(d.get("cpuInsns")), memory_bytes=_int(d.get("memBytes")))


@dataclass(slots=True, frozen=True)
class HostFunctionResult:
    auth: Tuple[AuthorizationEntry, ...] = ()
    retval: Optional[str] = None

    @staticmethod
    def from_rpc_dict(d: Mapping[str, Any]) -> "HostFunctionResult":
        return HostFunctionResult(
            auth=tuple(from_wire(a, AuthorizationEntry) for a in d.get("auth") or ()),
            retval=d.get("xdr"),
        )


@dataclass(slots=True, frozen=True)
class RestorePreamble:
    transaction_data: SorobanData
    min_resource_fee: int

    @property
    def expired_keys(self) -> Tuple[LedgerKey, ...]:
        fp = self.transaction_data.resources.footprint
        return tuple(fp.read_write) or tuple(fp.read_only)

    @staticmethod
    def from_rpc_dict(d: Mapping[str, Any]) -> "RestorePreamble":
        return RestorePreamble(
            transaction_data=from_wire(d["transactionData"], SorobanData),
            min_resource_fee=_int(d.get("minResourceFee")),
        )


@dataclass(slots=True, frozen=True)
class SimulationResult:
    """
    What the node reported for a simulated draft.

    When `error` is set the other fields are meaningless apart from
    `events` and `latest_ledger`.
    """

    latest_ledger: int = 0
    min_resource_fee: int = 0
    cost: Cost = field(default_factory=Cost)
    results: Tuple[HostFunctionResult, ...] = ()
    transaction_data: Optional[SorobanData] = None
    events: Tuple[str, ...] = ()
    restore_preamble: Optional[RestorePreamble] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def auth(self) -> Tuple[AuthorizationEntry, ...]:
        """Authorization requirements of the (single) host function."""
        return self.results[0].auth if self.results else ()

    @staticmethod
    def from_rpc_dict(d: Mapping[str, Any]) -> "SimulationResult":
        if d.get("error"):
            return SimulationResult(
                latest_ledger=_int(d.get("latestLedger")),
                events=_strings(d.get("events")),
                error=str(d["error"]),
            )
        td = d.get("transactionData")
        rp = d.get("restorePreamble")
        return SimulationResult(
            latest_ledger=_int(d.get("latestLedger")),
            min_resource_fee=_int(d.get("minResourceFee")),
            cost=Cost.from_rpc_dict(d.get("cost")),
            results=tuple(HostFunctionResult.from_rpc_dict(r) for r in d.get("results") or ()),
            transaction_data=from_wire(td, SorobanData) if td else None,
            events=_strings(d.get("events")),
            restore_preamble=RestorePreamble.from_rpc_dict(rp) if rp else None,
        )


# --- Submission & status -----------------------------------------------------


@dataclass(slots=True, frozen=True)
class SendTransactionResponse:
    status: str  # PENDING | DUPLICATE | TRY_AGAIN_LATER | ERROR
    hash: str
    latest_ledger: int = 0
    error_result: Optional[str] = None
    diagnostic_events: Tuple[str, ...] = ()

    @staticmethod
    def from_rpc_dict(d: Mapping[str, Any]) -> "SendTransactionResponse":
        return SendTransactionResponse(
            status=str(d.get("status", "")).upper(),
            hash=str(d.get("hash", "")),
            latest_ledger=_int(d.get("latestLedger")),
            error_result=d.get("errorResultXdr"),
            diagnostic_events=_strings(d.get("diagnosticEventsXdr")),
        )


@dataclass(slots=True, frozen=True)
class GetTransactionResponse:
    status: str  # NOT_FOUND | PENDING | SUCCESS | FAILED
    latest_ledger: int = 0
    ledger: Optional[int] = None
    result: Optional[str] = None
    result_meta: Optional[str] = None
    envelope: Optional[str] = None
    events: Tuple[str, ...] = ()

    @staticmethod
    def from_rpc_dict(d: Mapping[str, Any]) -> "GetTransactionResponse":
        return GetTransactionResponse(
            status=str(d.get("status", "")).upper(),
            latest_ledger=_int(d.get("latestLedger")),
            ledger=_int(d["ledger"]) if d.get("ledger") is not None else None,
            result=d.get("resultXdr"),
            result_meta=d.get("resultMetaXdr"),
            envelope=d.get("envelopeXdr"),
            events=_strings(d.get("diagnosticEventsXdr")),
        )


@dataclass(slots=True, frozen=True)
class LatestLedger:
    sequence: int
    id: Optional[str] = None
    protocol_version: Optional[int] = None

    @staticmethod
    def from_rpc_dict(d: Mapping[str, Any]) -> "LatestLedger":
        pv = d.get("protocolVersion")
        return LatestLedger(
            sequence=_int(d.get("sequence")),
            id=d.get("id"),
            protocol_version=_int(pv) if pv is not None else None,
        )


@dataclass(slots=True, frozen=True)
class NetworkInfo:
    passphrase: str
    protocol_version: Optional[int] = None
    friendbot_url: Optional[str] = None

    @staticmethod
    def from_rpc_dict(d: Mapping[str, Any]) -> "NetworkInfo":
        pv = d.get("protocolVersion")
        return NetworkInfo(
            passphrase=str(d.get("passphrase", "")),
            protocol_version=_int(pv) if pv is not None else None,
            friendbot_url=d.get("friendbotUrl"),
        )


__all__ = [
    "Cost",
    "HostFunctionResult",
    "RestorePreamble",
    "SimulationResult",
    "SendTransactionResponse",
    "GetTransactionResponse",
    "LatestLedger",
    "NetworkInfo",
]
