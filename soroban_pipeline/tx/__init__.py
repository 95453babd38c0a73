"""
soroban_pipeline.tx
===================

Transaction model and stages:

- envelope  immutable transaction / operation / auth model
- encode    canonical wire codec, hashes and envelope signing
- simulate  validate a draft and ask the node to simulate it
- assemble  apply simulation resources, fees, auth and restore preamble
- auth      resolve authorization-entry expirations and signatures
- send      submit an envelope and poll for its outcome

Stage modules are imported explicitly (e.g. `from soroban_pipeline.tx import assemble`).
"""

from .envelope import (
    AuthorizationEntry,
    AuthorizedInvocation,
    InvokeContract,
    Operation,
    RestoreFootprint,
    SorobanData,
    Transaction,
    TransactionEnvelope,
)

__all__ = [
    "AuthorizationEntry",
    "AuthorizedInvocation",
    "InvokeContract",
    "Operation",
    "RestoreFootprint",
    "SorobanData",
    "Transaction",
    "TransactionEnvelope",
]
