"""
soroban_pipeline.tx.assemble
============================

Apply a simulation to a draft transaction.

assemble(tx, sim, *, base_fee=100, instructions=None) -> Transaction

1. Only current-version transactions carry Soroban data; anything else
   raises `UnsupportedEnvelopeVersion`.
2. Fee: inclusion fee = max(draft inclusion fee, base_fee); resource fee =
   simulated minimum (+ restore preamble fee). The total must fit a uint32
   or `LargeFee` is raised.
3. `soroban_data` is the simulated transaction data verbatim (the footprint
   is exactly the simulated read-only / read-write sets), with the resource
   fee recorded and an optional instruction-budget override.
4. An `invoke_contract` operation without auth entries receives the
   simulated authorization entries.
5. A restore preamble prepends exactly one `restore_footprint` operation
   for the expired keys (not again if the draft already starts with it).

The function is pure: the same inputs always give the same transaction (and
the same wire bytes), and assembling an already-assembled transaction with
the same simulation returns it unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional, Tuple

from ..errors import LargeFee, SimulationRejected, UnsupportedEnvelopeVersion
from ..rpc.types import SimulationResult
from .envelope import (
    CURRENT_VERSION,
    AuthorizationEntry,
    InvokeContract,
    Operation,
    RestoreFootprint,
    SorobanData,
    Transaction,
)

log = logging.getLogger(__name__)

MAX_FEE = 2**32 - 1
DEFAULT_BASE_FEE = 100


def compute_fees(tx: Transaction, sim: SimulationResult, base_fee: int = DEFAULT_BASE_FEE) -> Tuple[int, int]:
    """Return (inclusion_fee, resource_fee) for `tx` under `sim`."""
    inclusion = max(tx.inclusion_fee, int(base_fee))
    resource = int(sim.min_resource_fee)
    if sim.restore_preamble is not None:
        resource += int(sim.restore_preamble.min_resource_fee)
    return inclusion, resource


def _soroban_data(sim: SimulationResult, resource_fee: int, instructions: Optional[int]) -> SorobanData:
    data = replace(sim.transaction_data or SorobanData(), resource_fee=resource_fee)
    if instructions is not None:
        data = replace(data, resources=replace(data.resources, instructions=int(instructions)))
    return data


def _attach_auth(ops: Tuple[Operation, ...], auth: Tuple[AuthorizationEntry, ...]) -> Tuple[Operation, ...]:
    if not auth:
        return ops
    out = []
    for op in ops:
        if isinstance(op.body, InvokeContract) and not op.body.auth:
            op = replace(op, body=replace(op.body, auth=tuple(auth)))
        out.append(op)
    return tuple(out)


def assemble(
    tx: Transaction,
    sim: SimulationResult,
    *,
    base_fee: int = DEFAULT_BASE_FEE,
    instructions: Optional[int] = None,
) -> Transaction:
    if tx.version != CURRENT_VERSION:
        raise UnsupportedEnvelopeVersion(tx.version)
    if sim.error is not None:
        raise SimulationRejected(message=sim.error, diagnostics=tuple(sim.events), latest_ledger=sim.latest_ledger)

    inclusion, resource = compute_fees(tx, sim, base_fee)
    fee = inclusion + resource
    if fee > MAX_FEE:
        raise LargeFee(fee)

    ops = _attach_auth(tx.operations, sim.auth)

    preamble = sim.restore_preamble
    if preamble is not None:
        restore = Operation(body=RestoreFootprint(keys=preamble.expired_keys))
        if not ops or ops[0] != restore:
            ops = (restore,) + ops

    out = replace(
        tx,
        fee=fee,
        operations=ops,
        soroban_data=_soroban_data(sim, resource, instructions),
    )
    log.debug(
        "assembled tx %s/%d: fee=%d (inclusion=%d resource=%d) ops=%d",
        tx.source_account,
        tx.seq_num,
        fee,
        inclusion,
        resource,
        len(ops),
    )
    return out


def auth_entries(tx: Transaction) -> Tuple[AuthorizationEntry, ...]:
    entries = []
    for op in tx.operations:
        if isinstance(op.body, InvokeContract):
            entries.extend(op.body.auth)
    return tuple(entries)


def requires_auth(tx: Transaction) -> bool:
    """True when some authorization entry still needs a signature."""
    return any(not e.is_resolved for e in auth_entries(tx))


def is_view(tx: Transaction) -> bool:
    """
    A read-only contract call: an invocation that writes nothing and needs
    nobody but the source account to authorize it. Such transactions need
    not be submitted; the simulation already holds the answer.
    """
    if tx.soroban_data is None:
        return False
    if not any(isinstance(op.body, InvokeContract) for op in tx.operations):
        return False
    if tx.soroban_data.resources.footprint.read_write:
        return False
    return all(e.uses_source_account for e in auth_entries(tx))


__all__ = ["MAX_FEE", "DEFAULT_BASE_FEE", "compute_fees", "assemble", "auth_entries", "requires_auth", "is_view"]
