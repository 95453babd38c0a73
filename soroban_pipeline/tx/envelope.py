"""
soroban_pipeline.tx.envelope
============================

Immutable transaction model.

Every type here is a frozen dataclass; "patching" a transaction always means
building a new value (see `dataclasses.replace`). Each model provides a
`to_dict()` / `from_dict()` pair producing the plain mapping that
`soroban_pipeline.tx.encode` serializes to the wire. Binary fields stay
`bytes` in the mapping (CBOR carries them natively).

Operations
----------
An `Operation` wraps one *body* from the closed `OperationBody` union. Each
body class carries a unique `KIND` tag; `OPERATION_KINDS` is the single
registration table used to decode bodies, and decoding an unregistered kind
raises `ValueError`.

Nothing here performs network I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Tuple, Type, Union, get_args

# --- Common aliases ----------------------------------------------------------

AccountId = str  # strkey G... (or muxed M...)
ContractId = str  # strkey C...
LedgerKey = str  # opaque ledger-key identifier

CURRENT_VERSION = 1
LEGACY_VERSION = 0

MEMO_KINDS = ("text", "id", "hash", "return")


def _tuple(v: Any) -> Tuple[Any, ...]:
    if v is None:
        return ()
    return tuple(v)


# --- Time bounds & memo ------------------------------------------------------


@dataclass(slots=True, frozen=True)
class TimeBounds:
    min_time: int = 0
    max_time: int = 0  # 0 = no upper bound

    def to_dict(self) -> Dict[str, Any]:
        return {"minTime": int(self.min_time), "maxTime": int(self.max_time)}

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "TimeBounds":
        return TimeBounds(min_time=int(d.get("minTime", 0)), max_time=int(d.get("maxTime", 0)))


@dataclass(slots=True, frozen=True)
class Memo:
    kind: str
    value: Union[str, int, bytes]

    def __post_init__(self) -> None:
        if self.kind not in MEMO_KINDS:
            raise ValueError(f"unknown memo kind {self.kind!r}; expected one of {MEMO_KINDS}")

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "value": self.value}

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "Memo":
        return Memo(kind=str(d["kind"]), value=d["value"])


# --- Soroban resources -------------------------------------------------------


@dataclass(slots=True, frozen=True)
class LedgerFootprint:
    read_only: Tuple[LedgerKey, ...] = ()
    read_write: Tuple[LedgerKey, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {"readOnly": list(self.read_only), "readWrite": list(self.read_write)}

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "LedgerFootprint":
        return LedgerFootprint(
            read_only=_tuple(d.get("readOnly")),
            read_write=_tuple(d.get("readWrite")),
        )


@dataclass(slots=True, frozen=True)
class SorobanResources:
    footprint: LedgerFootprint = field(default_factory=LedgerFootprint)
    instructions: int = 0
    read_bytes: int = 0
    write_bytes: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "footprint": self.footprint.to_dict(),
            "instructions": int(self.instructions),
            "readBytes": int(self.read_bytes),
            "writeBytes": int(self.write_bytes),
        }

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "SorobanResources":
        return SorobanResources(
            footprint=LedgerFootprint.from_dict(d.get("footprint") or {}),
            instructions=int(d.get("instructions", 0)),
            read_bytes=int(d.get("readBytes", 0)),
            write_bytes=int(d.get("writeBytes", 0)),
        )


@dataclass(slots=True, frozen=True)
class SorobanData:
    """Resource declaration attached to a Soroban transaction."""

    resources: SorobanResources = field(default_factory=SorobanResources)
    resource_fee: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"resources": self.resources.to_dict(), "resourceFee": int(self.resource_fee)}

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "SorobanData":
        return SorobanData(
            resources=SorobanResources.from_dict(d.get("resources") or {}),
            resource_fee=int(d.get("resourceFee", 0)),
        )


# --- Authorization -----------------------------------------------------------


@dataclass(slots=True, frozen=True)
class AuthorizedInvocation:
    """A contract call (and the calls it makes) that a signer authorizes."""

    contract_id: ContractId
    function_name: str
    args: Tuple[Any, ...] = ()
    sub_invocations: Tuple["AuthorizedInvocation", ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contractId": self.contract_id,
            "functionName": self.function_name,
            "args": list(self.args),
            "subInvocations": [s.to_dict() for s in self.sub_invocations],
        }

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "AuthorizedInvocation":
        return AuthorizedInvocation(
            contract_id=str(d["contractId"]),
            function_name=str(d["functionName"]),
            args=_tuple(d.get("args")),
            sub_invocations=tuple(AuthorizedInvocation.from_dict(s) for s in d.get("subInvocations") or ()),
        )


@dataclass(slots=True, frozen=True)
class AuthSignature:
    public_key: bytes
    signature: bytes

    def to_dict(self) -> Dict[str, Any]:
        return {"publicKey": bytes(self.public_key), "signature": bytes(self.signature)}

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "AuthSignature":
        return AuthSignature(public_key=bytes(d["publicKey"]), signature=bytes(d["signature"]))


@dataclass(slots=True, frozen=True)
class AuthorizationEntry:
    """
    One authorization requirement.

    `address is None` means source-account credentials: the transaction
    signature covers it and no separate signature is needed.
    """

    root_invocation: AuthorizedInvocation
    address: Optional[str] = None
    nonce: int = 0
    signature_expiration_ledger: int = 0
    signature: Optional[AuthSignature] = None

    @property
    def uses_source_account(self) -> bool:
        return self.address is None

    @property
    def is_resolved(self) -> bool:
        return self.address is None or self.signature is not None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "rootInvocation": self.root_invocation.to_dict(),
            "address": self.address,
            "nonce": int(self.nonce),
            "signatureExpirationLedger": int(self.signature_expiration_ledger),
        }
        if self.signature is not None:
            d["signature"] = self.signature.to_dict()
        return d

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "AuthorizationEntry":
        sig = d.get("signature")
        return AuthorizationEntry(
            root_invocation=AuthorizedInvocation.from_dict(d["rootInvocation"]),
            address=d.get("address"),
            nonce=int(d.get("nonce", 0)),
            signature_expiration_ledger=int(d.get("signatureExpirationLedger", 0)),
            signature=AuthSignature.from_dict(sig) if sig is not None else None,
        )


# --- Operation bodies --------------------------------------------------------


@dataclass(slots=True, frozen=True)
class InvokeContract:
    KIND: ClassVar[str] = "invoke_contract"
    SOROBAN: ClassVar[bool] = True

    contract_id: ContractId
    function_name: str
    args: Tuple[Any, ...] = ()
    auth: Tuple[AuthorizationEntry, ...] = ()


@dataclass(slots=True, frozen=True)
class ExtendFootprintTtl:
    KIND: ClassVar[str] = "extend_footprint_ttl"
    SOROBAN: ClassVar[bool] = True

    extend_to: int


@dataclass(slots=True, frozen=True)
class RestoreFootprint:
    KIND: ClassVar[str] = "restore_footprint"
    SOROBAN: ClassVar[bool] = True

    keys: Tuple[LedgerKey, ...] = ()


@dataclass(slots=True, frozen=True)
class Payment:
    KIND: ClassVar[str] = "payment"
    SOROBAN: ClassVar[bool] = False

    destination: AccountId
    asset: str
    amount: int


@dataclass(slots=True, frozen=True)
class CreateAccount:
    KIND: ClassVar[str] = "create_account"
    SOROBAN: ClassVar[bool] = False

    destination: AccountId
    starting_balance: int


@dataclass(slots=True, frozen=True)
class ChangeTrust:
    KIND: ClassVar[str] = "change_trust"
    SOROBAN: ClassVar[bool] = False

    asset: str
    limit: int


@dataclass(slots=True, frozen=True)
class ManageData:
    KIND: ClassVar[str] = "manage_data"
    SOROBAN: ClassVar[bool] = False

    name: str
    value: Optional[bytes] = None  # None deletes the entry


@dataclass(slots=True, frozen=True)
class AccountMerge:
    KIND: ClassVar[str] = "account_merge"
    SOROBAN: ClassVar[bool] = False

    destination: AccountId


@dataclass(slots=True, frozen=True)
class BumpSequence:
    KIND: ClassVar[str] = "bump_sequence"
    SOROBAN: ClassVar[bool] = False

    bump_to: int


@dataclass(slots=True, frozen=True)
class CreateClaimableBalance:
    KIND: ClassVar[str] = "create_claimable_balance"
    SOROBAN: ClassVar[bool] = False

    asset: str
    amount: int
    claimants: Tuple[AccountId, ...] = ()


@dataclass(slots=True, frozen=True)
class ClaimClaimableBalance:
    KIND: ClassVar[str] = "claim_claimable_balance"
    SOROBAN: ClassVar[bool] = False

    balance_id: str


@dataclass(slots=True, frozen=True)
class ClawbackClaimableBalance:
    KIND: ClassVar[str] = "clawback_claimable_balance"
    SOROBAN: ClassVar[bool] = False

    balance_id: str


@dataclass(slots=True, frozen=True)
class BeginSponsoringFutureReserves:
    KIND: ClassVar[str] = "begin_sponsoring_future_reserves"
    SOROBAN: ClassVar[bool] = False

    sponsored_id: AccountId


@dataclass(slots=True, frozen=True)
class EndSponsoringFutureReserves:
    KIND: ClassVar[str] = "end_sponsoring_future_reserves"
    SOROBAN: ClassVar[bool] = False


@dataclass(slots=True, frozen=True)
class RevokeSponsorship:
    KIND: ClassVar[str] = "revoke_sponsorship"
    SOROBAN: ClassVar[bool] = False

    ledger_key: LedgerKey


OperationBody = Union[
    InvokeContract,
    ExtendFootprintTtl,
    RestoreFootprint,
    Payment,
    CreateAccount,
    ChangeTrust,
    ManageData,
    AccountMerge,
    BumpSequence,
    CreateClaimableBalance,
    ClaimClaimableBalance,
    ClawbackClaimableBalance,
    BeginSponsoringFutureReserves,
    EndSponsoringFutureReserves,
    RevokeSponsorship,
]

# Single registration table: kind tag -> body class.
OPERATION_KINDS: Dict[str, Type[Any]] = {cls.KIND: cls for cls in get_args(OperationBody)}

SOROBAN_KINDS = frozenset(k for k, cls in OPERATION_KINDS.items() if cls.SOROBAN)


def body_to_dict(body: OperationBody) -> Dict[str, Any]:
    kind = getattr(type(body), "KIND", None)
    if OPERATION_KINDS.get(kind) is not type(body):
        raise ValueError(f"unregistered operation body: {type(body).__name__}")
    d: Dict[str, Any] = {"kind": kind}
    for f in fields(body):
        v = getattr(body, f.name)
        if f.name == "auth":
            v = [e.to_dict() for e in v]
        elif isinstance(v, tuple):
            v = list(v)
        d[f.name] = v
    return d


def body_from_dict(d: Mapping[str, Any]) -> OperationBody:
    kind = d.get("kind")
    cls = OPERATION_KINDS.get(kind)  # type: ignore[arg-type]
    if cls is None:
        raise ValueError(f"unknown operation kind: {kind!r}")
    kwargs: Dict[str, Any] = {}
    for f in fields(cls):
        if f.name not in d:
            continue
        v = d[f.name]
        if f.name == "auth":
            v = tuple(AuthorizationEntry.from_dict(e) for e in v or ())
        elif isinstance(v, list):
            v = tuple(v)
        kwargs[f.name] = v
    return cls(**kwargs)


@dataclass(slots=True, frozen=True)
class Operation:
    body: OperationBody
    source_account: Optional[AccountId] = None

    @property
    def kind(self) -> str:
        return self.body.KIND

    @property
    def is_soroban(self) -> bool:
        return self.body.KIND in SOROBAN_KINDS

    def to_dict(self) -> Dict[str, Any]:
        return {"body": body_to_dict(self.body), "sourceAccount": self.source_account}

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "Operation":
        return Operation(body=body_from_dict(d["body"]), source_account=d.get("sourceAccount"))


# --- Transaction & envelope --------------------------------------------------


@dataclass(slots=True, frozen=True)
class Transaction:
    """
    A transaction, either a draft (no `soroban_data`) or assembled.

    Identity is `(source_account, seq_num)`. `fee` is the total fee; for an
    assembled Soroban transaction it is inclusion fee + resource fee.
    """

    source_account: AccountId
    seq_num: int
    operations: Tuple[Operation, ...] = ()
    fee: int = 100
    time_bounds: Optional[TimeBounds] = None
    memo: Optional[Memo] = None
    version: int = CURRENT_VERSION
    soroban_data: Optional[SorobanData] = None

    @property
    def identity(self) -> Tuple[AccountId, int]:
        return (self.source_account, self.seq_num)

    @property
    def resource_fee(self) -> int:
        return self.soroban_data.resource_fee if self.soroban_data is not None else 0

    @property
    def inclusion_fee(self) -> int:
        return self.fee - self.resource_fee

    def soroban_operations(self) -> List[Tuple[int, Operation]]:
        return [(i, op) for i, op in enumerate(self.operations) if op.is_soroban]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sourceAccount": self.source_account,
            "seqNum": int(self.seq_num),
            "fee": int(self.fee),
            "timeBounds": self.time_bounds.to_dict() if self.time_bounds else None,
            "memo": self.memo.to_dict() if self.memo else None,
            "operations": [op.to_dict() for op in self.operations],
            "version": int(self.version),
            "sorobanData": self.soroban_data.to_dict() if self.soroban_data else None,
        }

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "Transaction":
        tb = d.get("timeBounds")
        memo = d.get("memo")
        sd = d.get("sorobanData")
        return Transaction(
            source_account=str(d["sourceAccount"]),
            seq_num=int(d["seqNum"]),
            fee=int(d.get("fee", 100)),
            time_bounds=TimeBounds.from_dict(tb) if tb else None,
            memo=Memo.from_dict(memo) if memo else None,
            operations=tuple(Operation.from_dict(o) for o in d.get("operations") or ()),
            version=int(d.get("version", CURRENT_VERSION)),
            soroban_data=SorobanData.from_dict(sd) if sd else None,
        )


@dataclass(slots=True, frozen=True)
class DecoratedSignature:
    hint: bytes  # last 4 bytes of the signer's public key
    signature: bytes

    def to_dict(self) -> Dict[str, Any]:
        return {"hint": bytes(self.hint), "signature": bytes(self.signature)}

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "DecoratedSignature":
        return DecoratedSignature(hint=bytes(d["hint"]), signature=bytes(d["signature"]))


@dataclass(slots=True, frozen=True)
class TransactionEnvelope:
    tx: Transaction
    signatures: Tuple[DecoratedSignature, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {"tx": self.tx.to_dict(), "signatures": [s.to_dict() for s in self.signatures]}

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "TransactionEnvelope":
        return TransactionEnvelope(
            tx=Transaction.from_dict(d["tx"]),
            signatures=tuple(DecoratedSignature.from_dict(s) for s in d.get("signatures") or ()),
        )


__all__ = [
    "AccountId",
    "ContractId",
    "LedgerKey",
    "CURRENT_VERSION",
    "LEGACY_VERSION",
    "MEMO_KINDS",
    "TimeBounds",
    "Memo",
    "LedgerFootprint",
    "SorobanResources",
    "SorobanData",
    "AuthorizedInvocation",
    "AuthSignature",
    "AuthorizationEntry",
    "InvokeContract",
    "ExtendFootprintTtl",
    "RestoreFootprint",
    "Payment",
    "CreateAccount",
    "ChangeTrust",
    "ManageData",
    "AccountMerge",
    "BumpSequence",
    "CreateClaimableBalance",
    "ClaimClaimableBalance",
    "ClawbackClaimableBalance",
    "BeginSponsoringFutureReserves",
    "EndSponsoringFutureReserves",
    "RevokeSponsorship",
    "OperationBody",
    "OPERATION_KINDS",
    "SOROBAN_KINDS",
    "body_to_dict",
    "body_from_dict",
    "Operation",
    "Transaction",
    "DecoratedSignature",
    "TransactionEnvelope",
]
