"""Signing capabilities (see `signer`)."""

from .signer import LocalKeySigner, Signer, address_for_seed, generate_seed, verify

__all__ = ["LocalKeySigner", "Signer", "address_for_seed", "generate_seed", "verify"]
