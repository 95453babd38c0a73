"""
soroban_pipeline.tx.send
========================

Submit signed envelopes to a node via JSON-RPC and poll for their outcome.

Primary entry points
--------------------
- submit(client, envelope, *, network_passphrase=None, timeout=None) -> Submission
    Sends the envelope via `sendTransaction`. `ERROR` raises `Rejected`,
    `TRY_AGAIN_LATER` raises `TryAgainLater`; `PENDING` and `DUPLICATE` are
    accepted and yield a `Submission` in the `Pending` state.

- poll(client, submission, *, interval=1.0, max_attempts=30, sleep=time.sleep, cancel=None, clock=time.monotonic) -> Outcome
    Fetches `getTransaction` up to `max_attempts` times with `interval`
    seconds between fetches, within `interval * max_attempts` seconds in
    total. `SUCCESS` / `FAILED` stop immediately; running out of attempts or
    time, or a fired cancellation, yields `Timeout`.

Outcomes
--------
`Pending -> {Success | Failed | Timeout}`. Only `poll` advances a
`Submission`, and a terminal outcome is never replaced.

`Timeout` is not a failure: the transaction may still apply later. Re-query
the hash before treating it as not having happened.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, ClassVar, Optional, Protocol, Tuple, Union

from ..clock import Cancellation, Clock
from ..diagnostics import log_events
from ..errors import Rejected, RpcError, TryAgainLater, Unreachable, UnexpectedTransactionStatus
from ..rpc.types import GetTransactionResponse, SendTransactionResponse
from .encode import transaction_hash
from .envelope import TransactionEnvelope

log = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_POLL_ATTEMPTS = 30

# getTransaction statuses
NOT_FOUND = "NOT_FOUND"
PENDING = "PENDING"
SUCCESS = "SUCCESS"
FAILED = "FAILED"

# sendTransaction statuses
SEND_PENDING = "PENDING"
SEND_DUPLICATE = "DUPLICATE"
SEND_TRY_AGAIN_LATER = "TRY_AGAIN_LATER"
SEND_ERROR = "ERROR"


class _Client(Protocol):
    def send_transaction(
        self, envelope: TransactionEnvelope, *, timeout: Optional[float] = None
    ) -> SendTransactionResponse: ...

    def get_transaction(self, tx_hash: str, *, timeout: Optional[float] = None) -> GetTransactionResponse: ...


# -----------------------------------------------------------------------------
# Outcomes
# -----------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class Pending:
    hash: str

    terminal: ClassVar[bool] = False
    name: ClassVar[str] = "pending"


@dataclass(slots=True, frozen=True)
class Success:
    hash: str
    ledger: Optional[int] = None
    result: Optional[str] = None
    result_meta: Optional[str] = None
    events: Tuple[str, ...] = ()

    terminal: ClassVar[bool] = True
    name: ClassVar[str] = "success"


@dataclass(slots=True, frozen=True)
class Failed:
    hash: str
    ledger: Optional[int] = None
    result: Optional[str] = None
    result_meta: Optional[str] = None
    events: Tuple[str, ...] = ()

    terminal: ClassVar[bool] = True
    name: ClassVar[str] = "failed"


@dataclass(slots=True, frozen=True)
class Timeout:
    """No terminal status seen in time. The transaction may still apply."""

    hash: str
    attempts: int
    last_error: Optional[str] = None

    terminal: ClassVar[bool] = True
    name: ClassVar[str] = "timeout"

    @property
    def advice(self) -> str:
        return (
            f"transaction {self.hash} did not reach a terminal status after {self.attempts} "
            "attempt(s); it may still apply. Query it by hash before resubmitting."
        )


Outcome = Union[Pending, Success, Failed, Timeout]


def outcome_to_dict(outcome: Outcome) -> dict:
    d: dict = {"status": outcome.name, "hash": outcome.hash}
    if isinstance(outcome, (Success, Failed)):
        d.update(
            ledger=outcome.ledger,
            result=outcome.result,
            resultMeta=outcome.result_meta,
            events=list(outcome.events),
        )
    elif isinstance(outcome, Timeout):
        d.update(attempts=outcome.attempts, lastError=outcome.last_error, advice=outcome.advice)
    return d


@dataclass
class Submission:
    """Tracks one submitted envelope until it reaches a terminal outcome."""

    hash: str
    envelope: TransactionEnvelope
    response: Optional[SendTransactionResponse] = None
    attempts: int = 0
    outcome: Outcome = field(init=False)

    def __post_init__(self) -> None:
        self.outcome = Pending(self.hash)

    @property
    def terminal(self) -> bool:
        return self.outcome.terminal

    def advance(self, outcome: Outcome) -> Outcome:
        if self.terminal:
            raise RuntimeError(f"submission {self.hash} already terminal ({self.outcome.name})")
        if outcome.hash != self.hash:
            raise ValueError(f"outcome for {outcome.hash} does not belong to submission {self.hash}")
        self.outcome = outcome
        return outcome


# -----------------------------------------------------------------------------
# Submit
# -----------------------------------------------------------------------------


def submit(
    client: _Client,
    envelope: TransactionEnvelope,
    *,
    network_passphrase: Optional[str] = None,
    timeout: Optional[float] = None,
) -> Submission:
    """Send `envelope` once and classify the node's answer."""
    resp = client.send_transaction(envelope, timeout=timeout)
    tx_hash = resp.hash
    if not tx_hash and network_passphrase is not None:
        tx_hash = transaction_hash(envelope, network_passphrase)

    if resp.status == SEND_ERROR:
        log.error("sendTransaction rejected %s: %s", tx_hash or "-", resp.error_result)
        log_events(resp.diagnostic_events, level=logging.ERROR, context="submission", logger=log)
        raise Rejected(
            reason=resp.error_result or "transaction rejected",
            tx_hash=tx_hash or None,
            status=resp.status,
            error_result=resp.error_result,
            diagnostics=resp.diagnostic_events,
        )
    if resp.status == SEND_TRY_AGAIN_LATER:
        raise TryAgainLater("node asked to resubmit later", method="sendTransaction")
    if resp.status not in (SEND_PENDING, SEND_DUPLICATE):
        raise UnexpectedTransactionStatus(resp.status, tx_hash or None)
    if not tx_hash:
        raise RpcError(method="sendTransaction", code=-32603, message="sendTransaction returned no hash")

    if resp.status == SEND_DUPLICATE:
        log.info("transaction %s already known to the node", tx_hash)
    else:
        log.info("submitted transaction %s", tx_hash)
    return Submission(hash=tx_hash, envelope=envelope, response=resp)


# -----------------------------------------------------------------------------
# Poll
# -----------------------------------------------------------------------------


def _terminal(status: GetTransactionResponse, tx_hash: str) -> Optional[Outcome]:
    if status.status == SUCCESS:
        return Success(tx_hash, status.ledger, status.result, status.result_meta, status.events)
    if status.status == FAILED:
        return Failed(tx_hash, status.ledger, status.result, status.result_meta, status.events)
    if status.status in (NOT_FOUND, PENDING):
        return None
    raise UnexpectedTransactionStatus(status.status, tx_hash)


def poll(
    client: _Client,
    submission: Submission,
    *,
    interval: float = DEFAULT_POLL_INTERVAL,
    max_attempts: int = DEFAULT_POLL_ATTEMPTS,
    sleep: Callable[[float], None] = time.sleep,
    cancel: Optional[Cancellation] = None,
    timeout: Optional[float] = None,
    clock: Clock = time.monotonic,
) -> Outcome:
    """
    Poll until `submission` reaches a terminal outcome.

    With a positive `interval` the whole poll, fetches included, ends within
    `interval * max_attempts` seconds of `clock`: every fetch timeout and
    every sleep is clamped to the time left. With `interval=0` only
    `max_attempts` bounds it. A transport failure during a fetch uses up that
    attempt and is reported on `Timeout.last_error` if nothing terminal follows.
    """
    if submission.terminal:
        return submission.outcome
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    budget = Cancellation.after(interval * max_attempts, clock=clock) if interval > 0 else Cancellation.never()

    def _bounded(seconds: Optional[float]) -> Optional[float]:
        seconds = budget.bounded(seconds)
        return cancel.bounded(seconds) if cancel is not None else seconds

    last_error: Optional[str] = None
    for attempt in range(1, max_attempts + 1):
        if budget.cancelled or (cancel is not None and cancel.cancelled):
            log.info("polling %s stopped after %d attempt(s)", submission.hash, submission.attempts)
            break
        call_timeout = _bounded(timeout)
        submission.attempts = attempt
        try:
            status = client.get_transaction(submission.hash, timeout=call_timeout)
        except Unreachable as e:
            last_error = str(e)
            log.warning("getTransaction %s failed (attempt %d/%d): %s", submission.hash, attempt, max_attempts, e)
        else:
            outcome = _terminal(status, submission.hash)
            if outcome is not None:
                if isinstance(outcome, Failed):
                    log.warning("transaction %s failed in ledger %s", submission.hash, outcome.ledger)
                    log_events(outcome.events, level=logging.WARNING, context="transaction", logger=log)
                else:
                    log.info("transaction %s succeeded in ledger %s", submission.hash, outcome.ledger)
                return submission.advance(outcome)
            log.debug("transaction %s %s (attempt %d/%d)", submission.hash, status.status, attempt, max_attempts)

        if attempt < max_attempts:
            delay = _bounded(interval)
            if delay:
                sleep(delay)

    return submission.advance(Timeout(submission.hash, submission.attempts, last_error))


__all__ = [
    "DEFAULT_POLL_INTERVAL",
    "DEFAULT_POLL_ATTEMPTS",
    "Pending",
    "Success",
    "Failed",
    "Timeout",
    "Outcome",
    "outcome_to_dict",
    "Submission",
    "submit",
    "poll",
]
