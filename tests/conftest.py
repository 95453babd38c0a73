"""
Shared pytest fixtures:
- Deterministic Ed25519 keys (source account, auth signer) and a contract id
- In-memory node implementing the NodeClient surface
- Scripted signers (recording / denying)
- Manual clock + sleep so poll loops run without wall-clock waits
- Factories for drafts, simulations and auth entries
"""

from __future__ import annotations

import dataclasses
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple

import pytest

from soroban_pipeline import strkey
from soroban_pipeline.config import TESTNET_PASSPHRASE
from soroban_pipeline.errors import SigningDenied
from soroban_pipeline.rpc.types import (
    GetTransactionResponse,
    LatestLedger,
    RestorePreamble,
    SendTransactionResponse,
    SimulationResult,
    HostFunctionResult,
)
from soroban_pipeline.tx.envelope import (
    AuthorizationEntry,
    AuthorizedInvocation,
    InvokeContract,
    LedgerFootprint,
    Operation,
    SorobanData,
    SorobanResources,
    Transaction,
)
from soroban_pipeline.wallet.signer import LocalKeySigner, address_for_seed

PASSPHRASE = TESTNET_PASSPHRASE


# ---------- KEYS ----------


@dataclasses.dataclass(frozen=True)
class Keys:
    source_seed: str
    auth_seed: str
    source: str
    auth: str
    contract: str


@pytest.fixture(scope="session")
def keys() -> Keys:
    source_seed = strkey.encode(strkey.SEED, bytes(range(32)))
    auth_seed = strkey.encode(strkey.SEED, bytes(range(32, 64)))
    return Keys(
        source_seed=source_seed,
        auth_seed=auth_seed,
        source=address_for_seed(source_seed),
        auth=address_for_seed(auth_seed),
        contract=strkey.encode(strkey.CONTRACT, b"\x07" * 32),
    )


@pytest.fixture
def passphrase() -> str:
    return PASSPHRASE


# ---------- SIGNERS ----------


class ScriptedSigner:
    """Delegates to a LocalKeySigner, records calls, refuses refs in `deny`."""

    def __init__(self, inner: LocalKeySigner, deny: Iterable[str] = (), fail: Optional[Exception] = None) -> None:
        self.inner = inner
        self.deny = set(deny)
        self.fail = fail
        self.calls: List[Tuple[bytes, str]] = []

    def sign(self, payload: bytes, signer_ref: str) -> bytes:
        self.calls.append((payload, signer_ref))
        if signer_ref in self.deny:
            raise SigningDenied(signer_ref, "user refused")
        if self.fail is not None:
            raise self.fail
        return self.inner.sign(payload, signer_ref)


@pytest.fixture
def local_signer(keys: Keys) -> LocalKeySigner:
    return LocalKeySigner.from_seeds([keys.source_seed, keys.auth_seed])


@pytest.fixture
def signer(local_signer: LocalKeySigner) -> ScriptedSigner:
    return ScriptedSigner(local_signer)


@pytest.fixture
def make_signer(local_signer: LocalKeySigner) -> Callable[..., ScriptedSigner]:
    def _make(deny: Iterable[str] = (), fail: Optional[Exception] = None) -> ScriptedSigner:
        return ScriptedSigner(local_signer, deny=deny, fail=fail)

    return _make


# ---------- CLOCK ----------


class ManualClock:
    """Monotonic clock advanced only by `sleep`."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    @property
    def slept(self) -> float:
        return sum(self.sleeps)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


# ---------- MODEL FACTORIES ----------


@pytest.fixture
def make_entry(keys: Keys) -> Callable[..., AuthorizationEntry]:
    def _make(
        address: Optional[str] = "auth",
        *,
        nonce: int = 7,
        function_name: str = "transfer",
    ) -> AuthorizationEntry:
        if address == "auth":
            address = keys.auth
        return AuthorizationEntry(
            root_invocation=AuthorizedInvocation(keys.contract, function_name, (keys.auth, 10)),
            address=address,
            nonce=nonce,
        )

    return _make


@pytest.fixture
def make_draft(keys: Keys) -> Callable[..., Transaction]:
    def _make(*ops: Any, fee: int = 100, seq_num: int = 42, version: int = 1) -> Transaction:
        if not ops:
            ops = (Operation(InvokeContract(keys.contract, "transfer", (keys.auth, 10))),)
        ops = tuple(op if isinstance(op, Operation) else Operation(op) for op in ops)
        return Transaction(source_account=keys.source, seq_num=seq_num, operations=ops, fee=fee, version=version)

    return _make


@pytest.fixture
def make_sim() -> Callable[..., SimulationResult]:
    def _make(
        *,
        min_resource_fee: int = 100,
        auth: Sequence[AuthorizationEntry] = (),
        read_only: Sequence[str] = ("contract-code", "contract-instance"),
        read_write: Sequence[str] = ("balance:auth",),
        instructions: int = 1_500_000,
        restore_keys: Optional[Sequence[str]] = None,
        restore_fee: int = 50,
        latest_ledger: int = 1000,
        events: Sequence[str] = ("fn_call transfer",),
        error: Optional[str] = None,
    ) -> SimulationResult:
        if error is not None:
            return SimulationResult(latest_ledger=latest_ledger, events=tuple(events), error=error)
        data = SorobanData(
            resources=SorobanResources(
                footprint=LedgerFootprint(tuple(read_only), tuple(read_write)),
                instructions=instructions,
                read_bytes=2048,
                write_bytes=512,
            ),
            resource_fee=min_resource_fee,
        )
        preamble = None
        if restore_keys is not None:
            preamble = RestorePreamble(
                transaction_data=SorobanData(
                    resources=SorobanResources(footprint=LedgerFootprint((), tuple(restore_keys))),
                    resource_fee=restore_fee,
                ),
                min_resource_fee=restore_fee,
            )
        return SimulationResult(
            latest_ledger=latest_ledger,
            min_resource_fee=min_resource_fee,
            results=(HostFunctionResult(auth=tuple(auth), retval="void"),),
            transaction_data=data,
            events=tuple(events),
            restore_preamble=preamble,
        )

    return _make


# ---------- FAKE NODE ----------


class FakeNode:
    """
    In-memory stand-in for a Soroban RPC node.

    `statuses` is a queue of getTransaction answers (status strings,
    GetTransactionResponse objects or exceptions to raise); once empty,
    `default_status` is returned.
    """

    def __init__(self, simulation: Any) -> None:
        self.simulation = simulation
        self.send_status: Any = "PENDING"
        self.send_error_result: Optional[str] = None
        self.tx_hash = "ab" * 32
        self.statuses: List[Any] = []
        self.default_status = "NOT_FOUND"
        self.latest_ledger = 1000
        self.calls: List[str] = []
        self.simulated: List[Transaction] = []
        self.sent: List[Any] = []

    def simulate_transaction(self, tx: Transaction, *, timeout: Optional[float] = None) -> SimulationResult:
        self.calls.append("simulateTransaction")
        self.simulated.append(tx)
        if isinstance(self.simulation, Exception):
            raise self.simulation
        return self.simulation

    def send_transaction(self, envelope: Any, *, timeout: Optional[float] = None) -> SendTransactionResponse:
        self.calls.append("sendTransaction")
        self.sent.append(envelope)
        if isinstance(self.send_status, Exception):
            raise self.send_status
        return SendTransactionResponse(
            status=self.send_status,
            hash=self.tx_hash,
            latest_ledger=self.latest_ledger,
            error_result=self.send_error_result,
        )

    def get_transaction(self, tx_hash: str, *, timeout: Optional[float] = None) -> GetTransactionResponse:
        self.calls.append("getTransaction")
        item = self.statuses.pop(0) if self.statuses else self.default_status
        if isinstance(item, Exception):
            raise item
        if isinstance(item, GetTransactionResponse):
            return item
        done = item in ("SUCCESS", "FAILED")
        return GetTransactionResponse(
            status=item,
            latest_ledger=self.latest_ledger,
            ledger=self.latest_ledger + 1 if done else None,
            result="result-xdr" if done else None,
            result_meta="meta-xdr" if done else None,
            events=("fn_return",) if done else (),
        )

    def get_latest_ledger(self, *, timeout: Optional[float] = None) -> LatestLedger:
        self.calls.append("getLatestLedger")
        return LatestLedger(sequence=self.latest_ledger)


@pytest.fixture
def node(make_sim: Callable[..., SimulationResult]) -> FakeNode:
    return FakeNode(make_sim())
