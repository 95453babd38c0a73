"""
soroban_pipeline.strkey
=======================

Encoding and validation of Stellar "strkey" identifiers.

Format
------
    strkey = base32( version_byte || payload || crc16_xmodem_le(version_byte || payload) )

with no base32 padding. The version byte selects the leading character:

    G  account public key (ed25519, 32-byte payload)
    S  account seed       (ed25519, 32-byte payload)
    C  contract id        (32-byte payload)
    M  muxed account      (32-byte key + 8-byte id)

This module provides:
- encode(kind, payload) -> str
- decode(kind, strkey) -> bytes
- is_valid(strkey, kinds=None) -> bool
- account_public_key(address) -> bytes   (G... or M... -> 32-byte ed25519 key)
- StrkeyError
"""

from __future__ import annotations

import base64
import binascii
from typing import Dict, Iterable, Optional

__all__ = [
    "ACCOUNT",
    "SEED",
    "CONTRACT",
    "MUXED",
    "StrkeyError",
    "crc16_xmodem",
    "encode",
    "decode",
    "kind_of",
    "is_valid",
    "account_public_key",
    "account_id",
]

ACCOUNT = "account"
SEED = "seed"
CONTRACT = "contract"
MUXED = "muxed"

_VERSION_BYTES: Dict[str, int] = {
    ACCOUNT: 6 << 3,  # 'G'
    SEED: 18 << 3,  # 'S'
    CONTRACT: 2 << 3,  # 'C'
    MUXED: 12 << 3,  # 'M'
}

_PAYLOAD_LEN: Dict[str, int] = {
    ACCOUNT: 32,
    SEED: 32,
    CONTRACT: 32,
    MUXED: 40,
}

_PREFIX: Dict[str, str] = {ACCOUNT: "G", SEED: "S", CONTRACT: "C", MUXED: "M"}


class StrkeyError(ValueError):
    """Raised for malformed strkeys or payloads."""


def crc16_xmodem(data: bytes) -> int:
    """CRC-16/XMODEM (poly 0x1021, init 0x0000, no reflection)."""
    crc = 0
    for byte in data:
        crc ^= byte << 8
        for _ in range(8):
            if crc & 0x8000:
                crc = ((crc << 1) ^ 0x1021) & 0xFFFF
            else:
                crc = (crc << 1) & 0xFFFF
    return crc


def _check_kind(kind: str) -> None:
    if kind not in _VERSION_BYTES:
        raise StrkeyError(f"unknown strkey kind: {kind!r}")


def encode(kind: str, payload: bytes) -> str:
    """Encode raw payload bytes as a strkey of the given kind."""
    _check_kind(kind)
    payload = bytes(payload)
    if len(payload) != _PAYLOAD_LEN[kind]:
        raise StrkeyError(f"{kind} payload must be {_PAYLOAD_LEN[kind]} bytes, got {len(payload)}")
    body = bytes([_VERSION_BYTES[kind]]) + payload
    checksum = crc16_xmodem(body).to_bytes(2, "little")
    return base64.b32encode(body + checksum).decode("ascii").rstrip("=")


def _raw_decode(strkey: str) -> bytes:
    if not isinstance(strkey, str) or not strkey:
        raise StrkeyError("strkey must be a non-empty string")
    if strkey != strkey.upper():
        raise StrkeyError("strkey must be upper-case")
    padded = strkey + "=" * (-len(strkey) % 8)
    try:
        raw = base64.b32decode(padded)
    except (binascii.Error, ValueError) as e:
        raise StrkeyError(f"invalid base32: {e}") from e
    if len(raw) < 3:
        raise StrkeyError("strkey too short")
    body, checksum = raw[:-2], raw[-2:]
    if crc16_xmodem(body).to_bytes(2, "little") != checksum:
        raise StrkeyError("checksum mismatch")
    # Canonical form only: re-encoding must give back the same text.
    if base64.b32encode(raw).decode("ascii").rstrip("=") != strkey:
        raise StrkeyError("non-canonical strkey encoding")
    return body


def kind_of(strkey: str) -> str:
    """Return the strkey kind ("account", "seed", "contract", "muxed")."""
    body = _raw_decode(strkey)
    for kind, vb in _VERSION_BYTES.items():
        if body[0] == vb:
            if len(body) - 1 != _PAYLOAD_LEN[kind]:
                raise StrkeyError(f"bad payload length for {kind}")
            return kind
    raise StrkeyError(f"unknown version byte {body[0]}")


def decode(kind: str, strkey: str) -> bytes:
    """Decode a strkey, requiring the given kind; returns the payload."""
    _check_kind(kind)
    if not strkey.startswith(_PREFIX[kind]):
        raise StrkeyError(f"expected a {kind} strkey starting with {_PREFIX[kind]!r}")
    body = _raw_decode(strkey)
    if body[0] != _VERSION_BYTES[kind]:
        raise StrkeyError(f"version byte mismatch for {kind}")
    payload = body[1:]
    if len(payload) != _PAYLOAD_LEN[kind]:
        raise StrkeyError(f"{kind} payload must be {_PAYLOAD_LEN[kind]} bytes")
    return payload


def is_valid(strkey: str, kinds: Optional[Iterable[str]] = None) -> bool:
    """True if `strkey` decodes cleanly (and is one of `kinds`, if given)."""
    try:
        kind = kind_of(strkey)
    except StrkeyError:
        return False
    return kinds is None or kind in set(kinds)


def account_public_key(address: str) -> bytes:
    """Return the 32-byte ed25519 key behind a G... or M... address."""
    if address.startswith("M"):
        return decode(MUXED, address)[:32]
    return decode(ACCOUNT, address)


def account_id(address: str) -> str:
    """The G... account behind `address`; muxed M... addresses lose their id."""
    return encode(ACCOUNT, account_public_key(address))
