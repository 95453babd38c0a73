"""
soroban_pipeline.tx.simulate
============================

Validate a draft transaction locally, then ask the node to simulate it.

- validate_draft(tx) -> None
    Raises `InvalidDraft` when the draft cannot possibly simulate:
    no operations, malformed source account, malformed per-operation source,
    or more than one Soroban operation.

- simulate(client, tx, *, timeout=None) -> SimulationResult
    One `simulateTransaction` call. Transport failures surface as
    `Unreachable`; a simulation error surfaces as `SimulationRejected` with
    the node's diagnostic events attached verbatim.
"""

from __future__ import annotations

import logging
from typing import Optional

from .. import strkey
from ..diagnostics import log_events, log_resources
from ..errors import InvalidDraft, SimulationRejected
from ..rpc.client import NodeClient
from ..rpc.types import SimulationResult
from .envelope import Transaction

log = logging.getLogger(__name__)

_ACCOUNT_KINDS = (strkey.ACCOUNT, strkey.MUXED)


def validate_draft(tx: Transaction) -> None:
    if not tx.operations:
        raise InvalidDraft("transaction has no operations", where="operations")
    if not strkey.is_valid(tx.source_account, _ACCOUNT_KINDS):
        raise InvalidDraft(f"invalid source account {tx.source_account!r}", where="source_account")
    for i, op in enumerate(tx.operations):
        if op.source_account is not None and not strkey.is_valid(op.source_account, _ACCOUNT_KINDS):
            raise InvalidDraft(
                f"invalid source account override {op.source_account!r}",
                where=f"operations[{i}].source_account",
            )
    soroban = tx.soroban_operations()
    if len(soroban) > 1:
        kinds = ", ".join(op.kind for _, op in soroban)
        raise InvalidDraft(
            f"at most one soroban operation per transaction, found {len(soroban)} ({kinds})",
            where="operations",
        )


def simulate(client: NodeClient, tx: Transaction, *, timeout: Optional[float] = None) -> SimulationResult:
    """Simulate `tx`; never mutates it."""
    validate_draft(tx)
    # Unreachable from the client propagates unchanged.
    result = client.simulate_transaction(tx, timeout=timeout)

    if result.error is not None:
        log.error("simulation failed: %s", result.error)
        log_events(result.events, level=logging.ERROR, logger=log)
        raise SimulationRejected(
            message=result.error,
            diagnostics=tuple(result.events),
            latest_ledger=result.latest_ledger or None,
        )

    log_events(result.events, level=logging.DEBUG, logger=log)
    log_resources(result.transaction_data, min_resource_fee=result.min_resource_fee, logger=log)
    if result.restore_preamble is not None:
        log.info(
            "simulation requires restoring %d expired entr%s (fee %d)",
            len(result.restore_preamble.expired_keys),
            "y" if len(result.restore_preamble.expired_keys) == 1 else "ies",
            result.restore_preamble.min_resource_fee,
        )
    return result


__all__ = ["validate_draft", "simulate"]
