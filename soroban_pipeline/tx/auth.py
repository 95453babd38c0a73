"""
soroban_pipeline.tx.auth
========================

Resolve authorization entries: choose an expiration ledger, get each entry
signed by its address, attach the signed entries to the invoke operation.

Rules
-----
- Entries are processed in simulation order.
- Source-account entries need no signature and pass through untouched.
- An entry already signed on the transaction is kept as is.
- Expiration is `policy.target` when set, otherwise the latest ledger plus
  `policy.horizon`. The latest ledger is fetched at most once per call, and
  only when something actually needs signing.
- The same (address, payload) pair is signed once; later duplicates reuse
  the first signature.
- All or nothing: if any signer refuses, `AuthorizationDenied` is raised and
  no signature from this call reaches the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .. import strkey
from ..errors import AuthorizationDenied, InvalidDraft, SigningDenied
from ..wallet.signer import Signer
from .assemble import auth_entries
from .encode import auth_payload, canonical_bytes
from .envelope import AuthorizationEntry, AuthSignature, InvokeContract, Transaction

log = logging.getLogger(__name__)

DEFAULT_HORIZON = 60  # ledgers, roughly five minutes


@dataclass(slots=True, frozen=True)
class ExpirationPolicy:
    horizon: int = DEFAULT_HORIZON
    target: Optional[int] = None

    def __post_init__(self) -> None:
        if self.horizon <= 0:
            raise ValueError("horizon must be > 0")
        if self.target is not None and self.target <= 0:
            raise ValueError("target ledger must be > 0")


def _entry_key(e: AuthorizationEntry) -> bytes:
    # Identity of a requirement, ignoring expiration and signature.
    return canonical_bytes({"address": e.address, "nonce": int(e.nonce), "invocation": e.root_invocation.to_dict()})


def _public_key(address: str) -> bytes:
    if address.startswith("C"):
        return strkey.decode(strkey.CONTRACT, address)
    return strkey.account_public_key(address)


def _with_auth(tx: Transaction, entries: Tuple[AuthorizationEntry, ...]) -> Transaction:
    ops = list(tx.operations)
    for i, op in enumerate(ops):
        if isinstance(op.body, InvokeContract):
            if op.body.auth == entries:
                return tx
            ops[i] = replace(op, body=replace(op.body, auth=entries))
            return replace(tx, operations=tuple(ops))
    if entries:
        raise InvalidDraft("authorization entries given but no invoke_contract operation", where="operations")
    return tx


def _expiration(
    policy: ExpirationPolicy,
    latest_ledger: Callable[[], int],
    known_ledger: Optional[int],
    first_ref: str,
) -> int:
    if policy.target is not None:
        if known_ledger is not None and policy.target < known_ledger:
            raise AuthorizationDenied(
                first_ref, f"expiration ledger {policy.target} is below current ledger {known_ledger}"
            )
        return policy.target
    current = int(latest_ledger())
    return current + policy.horizon


def resolve_auth(
    tx: Transaction,
    requirements: Optional[Sequence[AuthorizationEntry]],
    signer: Signer,
    policy: ExpirationPolicy = ExpirationPolicy(),
    *,
    network_passphrase: str,
    latest_ledger: Callable[[], int],
    known_ledger: Optional[int] = None,
) -> Transaction:
    """
    Return `tx` with every requirement resolved.

    `requirements` defaults to the entries already on the transaction.
    `known_ledger` (e.g. the simulation's latest ledger) is only used to
    reject an explicit target that already lies in the past.
    """
    reqs: Tuple[AuthorizationEntry, ...] = tuple(requirements) if requirements is not None else auth_entries(tx)
    existing: Dict[bytes, AuthorizationEntry] = {
        _entry_key(e): e for e in auth_entries(tx) if e.signature is not None
    }

    todo = [
        e for e in reqs if not e.is_resolved and _entry_key(e) not in existing
    ]
    if not todo:
        return _with_auth(tx, tuple(existing.get(_entry_key(e), e) for e in reqs))

    expiration = _expiration(policy, latest_ledger, known_ledger, str(todo[0].address))
    log.debug("resolving %d authorization entr%s, expiration ledger %d", len(todo), "y" if len(todo) == 1 else "ies", expiration)

    signed: Dict[Tuple[str, bytes], AuthSignature] = {}
    out: List[AuthorizationEntry] = []
    for e in reqs:
        if e.is_resolved:
            out.append(e)
            continue
        prior = existing.get(_entry_key(e))
        if prior is not None:
            out.append(prior)
            continue
        address = str(e.address)
        payload = auth_payload(e, network_passphrase, expiration)
        sig = signed.get((address, payload))
        if sig is None:
            try:
                raw = signer.sign(payload, address)
            except SigningDenied as err:
                log.warning("signer %s denied authorization: %s", address, err.reason)
                raise AuthorizationDenied(address, err.reason) from err
            except Exception as err:
                log.warning("signer %s failed: %s", address, err)
                raise AuthorizationDenied(address, f"{type(err).__name__}: {err}") from err
            sig = AuthSignature(public_key=_public_key(address), signature=bytes(raw))
            signed[(address, payload)] = sig
        out.append(replace(e, signature_expiration_ledger=expiration, signature=sig))

    return _with_auth(tx, tuple(out))


__all__ = ["DEFAULT_HORIZON", "ExpirationPolicy", "resolve_auth"]
