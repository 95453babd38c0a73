"""
soroban_pipeline.tx.encode
==========================

Deterministic wire encoding for transactions, envelopes and auth entries.

This module provides:
- `to_wire(model)` → base64 text of the canonical CBOR encoding of `model.to_dict()`
- `from_wire(text, cls)` → `cls.from_dict(...)` of the decoded payload
- `decode_any(text)` → best-effort decode (envelope, transaction, soroban data, auth entry)
- `network_id(passphrase)` → sha256 of the network passphrase
- `transaction_hash(tx, passphrase)` → hex id of the transaction on that network
- `auth_payload(entry, passphrase, expiration)` → 32-byte preimage hash an auth signer signs
- `sign_envelope(envelope, signer, signer_ref, passphrase)` → envelope with one more signature
- `to_json(model)` → human readable JSON (bytes rendered as hex)

Design notes
------------
* CBOR is produced with `cbor2.dumps(..., canonical=True)`: map keys are
  sorted, so identical models always give identical bytes.
* The hash preimages mix in the network id, so a signature made for one
  network cannot be replayed on another.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import json
from typing import Any, Dict, Mapping, Protocol, Type, TypeVar, Union

import cbor2

from .. import strkey
from .envelope import (
    AuthorizationEntry,
    DecoratedSignature,
    SorobanData,
    Transaction,
    TransactionEnvelope,
)

T = TypeVar("T")

TxLike = Union[Transaction, TransactionEnvelope]


class _Signer(Protocol):
    def sign(self, payload: bytes, signer_ref: str) -> bytes: ...


class _Model(Protocol):
    def to_dict(self) -> Dict[str, Any]: ...


# -----------------------------------------------------------------------------
# Canonical bytes
# -----------------------------------------------------------------------------


def canonical_bytes(obj: Any) -> bytes:
    """Canonical CBOR for a model (via `to_dict`) or a plain mapping."""
    if hasattr(obj, "to_dict"):
        obj = obj.to_dict()
    return cbor2.dumps(obj, canonical=True)


def to_wire(model: _Model) -> str:
    return base64.b64encode(canonical_bytes(model)).decode("ascii")


def _wire_payload(text: str) -> Dict[str, Any]:
    if not isinstance(text, str) or not text.strip():
        raise ValueError("wire text must be a non-empty string")
    try:
        raw = base64.b64decode(text.strip(), validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"invalid base64 wire text: {e}") from e
    try:
        obj = cbor2.loads(raw)
    except cbor2.CBORDecodeError as e:
        raise ValueError(f"invalid CBOR payload: {e}") from e
    if not isinstance(obj, dict):
        raise ValueError("wire payload must decode to a CBOR map")
    return obj


def from_wire(text: str, cls: Type[T]) -> T:
    """Decode `text` as an instance of `cls` (any model with `from_dict`)."""
    obj = _wire_payload(text)
    try:
        return cls.from_dict(obj)  # type: ignore[attr-defined]
    except (KeyError, TypeError) as e:
        raise ValueError(f"wire payload is not a valid {cls.__name__}: {e}") from e


_SNIFF = (
    ("tx", TransactionEnvelope),
    ("seqNum", Transaction),
    ("rootInvocation", AuthorizationEntry),
    ("resources", SorobanData),
)


def decode_any(text: str) -> Any:
    """Decode wire text without knowing its type up front (used by the CLI)."""
    obj = _wire_payload(text)
    for marker, cls in _SNIFF:
        if marker in obj:
            try:
                return cls.from_dict(obj)
            except (KeyError, TypeError) as e:
                raise ValueError(f"wire payload is not a valid {cls.__name__}: {e}") from e
    raise ValueError(f"unrecognized wire payload with keys {sorted(map(str, obj))}")


# -----------------------------------------------------------------------------
# Hash helpers
# -----------------------------------------------------------------------------


def network_id(passphrase: str) -> bytes:
    return hashlib.sha256(passphrase.encode("utf-8")).digest()


def transaction_hash_bytes(tx: TxLike, passphrase: str) -> bytes:
    if isinstance(tx, TransactionEnvelope):
        tx = tx.tx
    preimage = canonical_bytes({"networkId": network_id(passphrase), "tx": tx.to_dict()})
    return hashlib.sha256(preimage).digest()


def transaction_hash(tx: TxLike, passphrase: str) -> str:
    """Lower-case hex transaction id; signatures do not change it."""
    return transaction_hash_bytes(tx, passphrase).hex()


def auth_payload(entry: AuthorizationEntry, passphrase: str, expiration_ledger: int) -> bytes:
    """
    The 32-byte hash an address signer signs to authorize `entry`.

    Preimage: canonical CBOR of
        {networkId, nonce, signatureExpirationLedger, invocation}
    """
    preimage = canonical_bytes(
        {
            "networkId": network_id(passphrase),
            "nonce": int(entry.nonce),
            "signatureExpirationLedger": int(expiration_ledger),
            "invocation": entry.root_invocation.to_dict(),
        }
    )
    return hashlib.sha256(preimage).digest()


# -----------------------------------------------------------------------------
# Envelope signing
# -----------------------------------------------------------------------------


def signature_hint(address: str) -> bytes:
    return strkey.account_public_key(address)[-4:]


def sign_envelope(
    envelope: TxLike,
    signer: _Signer,
    signer_ref: str,
    passphrase: str,
) -> TransactionEnvelope:
    """
    Append a decorated signature by `signer_ref` (a G... address) over the
    transaction hash. Signer errors propagate unchanged.
    """
    if isinstance(envelope, Transaction):
        envelope = TransactionEnvelope(tx=envelope)
    digest = transaction_hash_bytes(envelope.tx, passphrase)
    sig = signer.sign(digest, signer_ref)
    decorated = DecoratedSignature(hint=signature_hint(signer_ref), signature=bytes(sig))
    return TransactionEnvelope(tx=envelope.tx, signatures=envelope.signatures + (decorated,))


# -----------------------------------------------------------------------------
# JSON rendering
# -----------------------------------------------------------------------------


def _jsonable(v: Any) -> Any:
    if isinstance(v, (bytes, bytearray)):
        return bytes(v).hex()
    if isinstance(v, Mapping):
        return {str(k): _jsonable(x) for k, x in v.items()}
    if isinstance(v, (list, tuple)):
        return [_jsonable(x) for x in v]
    return v


def to_json(model: Any, *, indent: int | None = 2) -> str:
    obj = model.to_dict() if hasattr(model, "to_dict") else model
    return json.dumps(_jsonable(obj), indent=indent, sort_keys=True)


__all__ = [
    "canonical_bytes",
    "to_wire",
    "from_wire",
    "decode_any",
    "network_id",
    "transaction_hash_bytes",
    "transaction_hash",
    "auth_payload",
    "signature_hint",
    "sign_envelope",
    "to_json",
]
