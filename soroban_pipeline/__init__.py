"""
Soroban transaction pipeline (Python)
Convenience exports for the most common APIs.
"""

from .version import __version__  # noqa: F401

# Core config & errors
from .config import PipelineConfig  # noqa: F401
from .clock import Cancellation  # noqa: F401
from .errors import (  # noqa: F401
    PipelineError,
    RpcError,
    InvalidDraft,
    Unreachable,
    TryAgainLater,
    Cancelled,
    SimulationRejected,
    UnsupportedEnvelopeVersion,
    LargeFee,
    SigningDenied,
    AuthorizationDenied,
    Rejected,
    UnexpectedTransactionStatus,
)

# RPC
from .rpc.http import RpcClient  # noqa: F401
from .rpc.client import NodeClient, SorobanRpc  # noqa: F401
from .rpc.types import SimulationResult  # noqa: F401

# Wallet
from .wallet.signer import LocalKeySigner, Signer  # noqa: F401

# Tx stages
from .tx.envelope import Operation, Transaction, TransactionEnvelope  # noqa: F401
from .tx.encode import from_wire, to_wire, transaction_hash  # noqa: F401
from .tx.simulate import simulate  # noqa: F401
from .tx.assemble import assemble  # noqa: F401
from .tx.auth import ExpirationPolicy, resolve_auth  # noqa: F401
from .tx.send import Failed, Pending, Submission, Success, Timeout, poll, submit  # noqa: F401

# Orchestration
from .pipeline import Pipeline, PipelineResult  # noqa: F401

__all__ = [
    "__version__",
    # Core
    "PipelineConfig", "Cancellation",
    "PipelineError", "RpcError", "InvalidDraft", "Unreachable", "TryAgainLater",
    "Cancelled", "SimulationRejected", "UnsupportedEnvelopeVersion", "LargeFee",
    "SigningDenied", "AuthorizationDenied", "Rejected", "UnexpectedTransactionStatus",
    # RPC
    "RpcClient", "NodeClient", "SorobanRpc", "SimulationResult",
    # Wallet
    "LocalKeySigner", "Signer",
    # Tx
    "Operation", "Transaction", "TransactionEnvelope",
    "from_wire", "to_wire", "transaction_hash",
    "simulate", "assemble", "ExpirationPolicy", "resolve_auth",
    "Pending", "Success", "Failed", "Timeout", "Submission", "submit", "poll",
    # Orchestration
    "Pipeline", "PipelineResult",
]
