"""
Typed error classes for the transaction pipeline.

Every stage raises a subclass of `PipelineError` so callers can catch a
specific failure mode (e.g. `SimulationRejected`) or the whole family at once.

Classification
--------------
- InvalidDraft                local validation, never retried
- Unreachable / TryAgainLater transport; retrying is the caller's decision
- Cancelled                   caller deadline hit during simulate/authorize/submit
- SimulationRejected          node refused to simulate (diagnostics attached)
- UnsupportedEnvelopeVersion  legacy envelope handed to the assembler
- LargeFee                    computed fee does not fit the uint32 fee field
- AuthorizationDenied         a required signer refused; nothing was attached
- SigningDenied               raised by signer implementations
- Rejected                    node refused the signed envelope on submit
- UnexpectedTransactionStatus getTransaction returned an unknown status

An on-chain failure and a poll timeout are *outcomes* (see
`soroban_pipeline.tx.send`), not exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, Optional, Tuple

__all__ = [
    "PipelineError",
    "JsonRpcCode",
    "RpcError",
    "InvalidDraft",
    "Unreachable",
    "TryAgainLater",
    "Cancelled",
    "SimulationRejected",
    "UnsupportedEnvelopeVersion",
    "LargeFee",
    "SigningDenied",
    "AuthorizationDenied",
    "Rejected",
    "UnexpectedTransactionStatus",
    "from_jsonrpc_error",
    "raise_for_jsonrpc_result",
]


class PipelineError(Exception):
    """Base class for all pipeline errors."""

    retryable: bool = False


class JsonRpcCode(IntEnum):
    # JSON-RPC 2.0 standard codes
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    # Server errors (implementation-defined range: -32099 to -32000)
    SERVER_ERROR = -32000

    # Client-side codes used when no server error object exists
    TRANSPORT_ERROR = -32098


@dataclass(slots=True)
class RpcError(PipelineError):
    """Raised when a JSON-RPC call returns an error object."""

    method: Optional[str]
    code: int
    message: str
    data: Optional[Any] = None
    request_id: Optional[Any] = None
    http_status: Optional[int] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        parts = [f"RPC[{self.method or '-'}] code={self.code} msg={self.message!r}"]
        if self.request_id is not None:
            parts.append(f"id={self.request_id}")
        if self.http_status is not None:
            parts.append(f"http={self.http_status}")
        if self.data is not None:
            parts.append(f"data={self.data!r}")
        return " ".join(parts)

    @property
    def code_enum(self) -> Optional[JsonRpcCode]:
        try:
            return JsonRpcCode(self.code)
        except ValueError:
            return None


@dataclass(slots=True)
class InvalidDraft(PipelineError):
    """The draft transaction failed local validation before any network call."""

    message: str
    where: Optional[str] = None

    def __str__(self) -> str:
        where = f" [{self.where}]" if self.where else ""
        return f"InvalidDraft{where}: {self.message}"


@dataclass(slots=True)
class Unreachable(PipelineError):
    """
    The node could not be reached (connection refused, timeout, 5xx).

    Retryable, but never retried inside a single pipeline run.
    """

    message: str
    method: Optional[str] = None
    http_status: Optional[int] = None

    retryable = True

    def __str__(self) -> str:
        bits = [f"Unreachable[{self.method or '-'}]: {self.message}"]
        if self.http_status is not None:
            bits.append(f"http={self.http_status}")
        return " ".join(bits)


@dataclass(slots=True)
class TryAgainLater(Unreachable):
    """Node accepted the request but asked for a later resubmission."""


@dataclass(slots=True)
class Cancelled(PipelineError):
    """
    The caller's cancellation fired during simulation, authorization or submission.

    When `stage == "submit"` the envelope may already have reached the node;
    re-query by hash before resubmitting.
    """

    stage: str
    tx_hash: Optional[str] = None

    def __str__(self) -> str:
        suffix = f" tx={self.tx_hash}" if self.tx_hash else ""
        return f"Cancelled during {self.stage}{suffix}"


@dataclass(slots=True)
class SimulationRejected(PipelineError):
    """The node simulated the transaction and reported an error (e.g. a contract trap)."""

    message: str
    diagnostics: Tuple[str, ...] = ()
    latest_ledger: Optional[int] = None

    def __str__(self) -> str:
        n = len(self.diagnostics)
        return f"SimulationRejected: {self.message} ({n} diagnostic event{'s' if n != 1 else ''})"


@dataclass(slots=True)
class UnsupportedEnvelopeVersion(PipelineError):
    """Only the current transaction version carries Soroban resource data."""

    version: int

    def __str__(self) -> str:
        return f"UnsupportedEnvelopeVersion: version {self.version} cannot carry Soroban resources"


@dataclass(slots=True)
class LargeFee(PipelineError):
    """The assembled fee overflows the 32-bit fee field."""

    fee: int

    def __str__(self) -> str:
        return f"LargeFee: fee {self.fee} exceeds uint32"


@dataclass(slots=True)
class SigningDenied(PipelineError):
    """Raised by a signer capability that refuses or cannot produce a signature."""

    signer_ref: str
    reason: str = "denied"

    def __str__(self) -> str:
        return f"SigningDenied[{self.signer_ref}]: {self.reason}"


@dataclass(slots=True)
class AuthorizationDenied(PipelineError):
    """A required authorization signer refused; no entry was attached."""

    signer_ref: str
    reason: str = "denied"

    def __str__(self) -> str:
        return f"AuthorizationDenied[{self.signer_ref}]: {self.reason}"


@dataclass(slots=True)
class Rejected(PipelineError):
    """
    The node refused the envelope on submit (malformed envelope, bad or expired
    sequence number, insufficient fee, ...). Terminal.
    """

    reason: str
    tx_hash: Optional[str] = None
    status: Optional[str] = None
    error_result: Optional[str] = None
    diagnostics: Tuple[str, ...] = field(default_factory=tuple)

    def __str__(self) -> str:
        suffix = f" tx={self.tx_hash}" if self.tx_hash else ""
        return f"Rejected{suffix}: {self.reason}"


@dataclass(slots=True)
class UnexpectedTransactionStatus(PipelineError):
    """getTransaction returned a status this client does not understand."""

    status: str
    tx_hash: Optional[str] = None

    def __str__(self) -> str:
        return f"unexpected transaction status {self.status!r} (tx={self.tx_hash})"


def from_jsonrpc_error(
    err_obj: Dict[str, Any],
    *,
    method: Optional[str] = None,
    request_id: Optional[Any] = None,
    http_status: Optional[int] = None,
) -> RpcError:
    """
    Convert a JSON-RPC error object into RpcError.

    `err_obj` should resemble: {"code": int, "message": str, "data": any?}
    """
    code = int(err_obj.get("code", JsonRpcCode.SERVER_ERROR))
    message = str(err_obj.get("message", "Unknown JSON-RPC error"))
    return RpcError(
        method=method,
        code=code,
        message=message,
        data=err_obj.get("data"),
        request_id=request_id,
        http_status=http_status,
    )


def raise_for_jsonrpc_result(
    result: Dict[str, Any],
    *,
    method: Optional[str] = None,
    http_status: Optional[int] = None,
) -> None:
    """If `result` contains an "error" field, raise RpcError."""
    if "error" in result and result["error"] is not None:
        err = result["error"] if isinstance(result["error"], dict) else {"message": str(result["error"])}
        raise from_jsonrpc_error(
            err, method=method, request_id=result.get("id"), http_status=http_status
        )
