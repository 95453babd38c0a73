"""
soroban_pipeline.wallet.signer
==============================

Signing capability consumed by the pipeline.

The pipeline never stores or derives keys itself; it asks a `Signer` to sign
a payload on behalf of a `signer_ref` (an account address). Implementations
raise `SigningDenied` when they refuse or cannot sign.

Provided here
-------------
- Signer          protocol: sign(payload, signer_ref) -> signature bytes
- LocalKeySigner  in-memory Ed25519 keys (via `cryptography`), given as S... seeds
- generate_seed() fresh random S... seed (handy for tests and local networks)

Notes
-----
- Ed25519 signatures are deterministic: the same key and payload always give
  the same 64-byte signature.
- `signer_ref` lookups are exact string matches on the G... address.
"""

from __future__ import annotations

import logging
import os
from typing import Dict, Iterable, Protocol

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from cryptography.exceptions import InvalidSignature

from .. import strkey
from ..errors import SigningDenied

log = logging.getLogger(__name__)

__all__ = ["Signer", "LocalKeySigner", "generate_seed", "address_for_seed", "verify"]


class Signer(Protocol):
    def sign(self, payload: bytes, signer_ref: str) -> bytes: ...


def _private_key(seed: str) -> Ed25519PrivateKey:
    try:
        raw = strkey.decode(strkey.SEED, seed)
    except strkey.StrkeyError as e:
        raise ValueError(f"invalid secret seed: {e}") from e
    return Ed25519PrivateKey.from_private_bytes(raw)


def _public_bytes(key: Ed25519PublicKey) -> bytes:
    return key.public_bytes(Encoding.Raw, PublicFormat.Raw)


def address_for_seed(seed: str) -> str:
    """G... address of the key behind an S... seed."""
    return strkey.encode(strkey.ACCOUNT, _public_bytes(_private_key(seed).public_key()))


def generate_seed() -> str:
    return strkey.encode(strkey.SEED, os.urandom(32))


def verify(address: str, payload: bytes, signature: bytes) -> bool:
    """Check an Ed25519 signature made by the account behind `address`."""
    key = Ed25519PublicKey.from_public_bytes(strkey.account_public_key(address))
    try:
        key.verify(bytes(signature), bytes(payload))
    except InvalidSignature:
        return False
    return True


class LocalKeySigner:
    """
    Holds Ed25519 keys in memory, indexed by their G... address.

    Example
    -------
        signer = LocalKeySigner.from_seeds(["S..."])
        sig = signer.sign(payload, "G...")
    """

    def __init__(self) -> None:
        self._keys: Dict[str, Ed25519PrivateKey] = {}

    @classmethod
    def from_seeds(cls, seeds: Iterable[str]) -> "LocalKeySigner":
        signer = cls()
        for seed in seeds:
            signer.add_seed(seed)
        return signer

    def add_seed(self, seed: str) -> str:
        """Register a key; returns its address."""
        key = _private_key(seed)
        address = strkey.encode(strkey.ACCOUNT, _public_bytes(key.public_key()))
        self._keys[address] = key
        return address

    @property
    def addresses(self) -> tuple[str, ...]:
        return tuple(self._keys)

    def public_key(self, signer_ref: str) -> bytes:
        key = self._keys.get(signer_ref)
        if key is None:
            raise SigningDenied(signer_ref, "no key for this address")
        return _public_bytes(key.public_key())

    def sign(self, payload: bytes, signer_ref: str) -> bytes:
        key = self._keys.get(signer_ref)
        if key is None:
            raise SigningDenied(signer_ref, "no key for this address")
        log.debug("signing %d-byte payload for %s", len(payload), signer_ref)
        return key.sign(bytes(payload))
