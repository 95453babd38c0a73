"""
End-to-end transaction pipeline.

    draft --simulate--> SimulationResult
          --assemble--> assembled transaction (fees, resources, restore preamble)
          --authorize-> auth entries signed
          --sign------> envelope signed by the source account
          --submit----> Submission (Pending)
          --poll------> Success | Failed | Timeout

Each stage is also callable on its own. The node client and signer are
injected capabilities; `sleep` and `clock` are injectable so tests run
without wall-clock waits.

Cancellation firing before or during simulate, authorize or submit raises
`Cancelled(stage)` (once submitting, the envelope may already be on the
network and the error carries its hash); during polling it ends the poll
with `Timeout`.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from . import strkey
from .clock import Cancellation, Clock
from .config import PipelineConfig
from .errors import Cancelled, Unreachable
from .rpc.client import NodeClient
from .rpc.types import SimulationResult
from .tx import assemble as _assemble
from .tx import auth as _auth
from .tx import send as _send
from .tx import simulate as _simulate
from .tx.encode import sign_envelope, transaction_hash
from .tx.envelope import Transaction, TransactionEnvelope
from .wallet.signer import Signer

log = logging.getLogger(__name__)


@dataclass(slots=True)
class PipelineResult:
    simulation: SimulationResult
    transaction: Transaction
    envelope: Optional[TransactionEnvelope] = None
    submission: Optional[_send.Submission] = None

    @property
    def hash(self) -> Optional[str]:
        return self.submission.hash if self.submission is not None else None

    @property
    def outcome(self) -> Optional[_send.Outcome]:
        return self.submission.outcome if self.submission is not None else None


class Pipeline:
    def __init__(
        self,
        client: NodeClient,
        signer: Signer,
        config: Optional[PipelineConfig] = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Clock = time.monotonic,
    ) -> None:
        self.client = client
        self.signer = signer
        self.config = config or PipelineConfig()
        self.sleep = sleep
        self.clock = clock

    # --- helpers ---------------------------------------------------------

    def _timeout(self, cancel: Optional[Cancellation]) -> Optional[float]:
        if cancel is None:
            return self.config.request_timeout
        return cancel.bounded(self.config.request_timeout)

    @staticmethod
    def _check(cancel: Optional[Cancellation], stage: str, tx_hash: Optional[str] = None) -> None:
        if cancel is not None and cancel.cancelled:
            raise Cancelled(stage, tx_hash)

    # --- stages ----------------------------------------------------------

    def simulate(self, tx: Transaction, *, cancel: Optional[Cancellation] = None) -> SimulationResult:
        self._check(cancel, "simulate")
        try:
            return _simulate.simulate(self.client, tx, timeout=self._timeout(cancel))
        except Unreachable as e:
            if cancel is not None and cancel.cancelled:
                raise Cancelled("simulate") from e
            raise

    def assemble(self, tx: Transaction, sim: SimulationResult, *, instructions: Optional[int] = None) -> Transaction:
        return _assemble.assemble(tx, sim, base_fee=self.config.base_fee, instructions=instructions)

    def authorize(
        self,
        tx: Transaction,
        sim: SimulationResult,
        *,
        expiration_ledger: Optional[int] = None,
        cancel: Optional[Cancellation] = None,
    ) -> Transaction:
        self._check(cancel, "authorize")
        policy = _auth.ExpirationPolicy(horizon=self.config.auth_horizon, target=expiration_ledger)
        try:
            return _auth.resolve_auth(
                tx,
                sim.auth or None,
                self.signer,
                policy,
                network_passphrase=self.config.network_passphrase,
                latest_ledger=lambda: self.client.get_latest_ledger(timeout=self._timeout(cancel)).sequence,
                known_ledger=sim.latest_ledger or None,
            )
        except Unreachable as e:
            if cancel is not None and cancel.cancelled:
                raise Cancelled("authorize") from e
            raise

    def sign(self, tx: Transaction, *, signer_ref: Optional[str] = None) -> TransactionEnvelope:
        """Sign the envelope; a muxed source signs with its underlying G account."""
        ref = signer_ref or strkey.account_id(tx.source_account)
        return sign_envelope(tx, self.signer, ref, self.config.network_passphrase)

    def submit(self, envelope: TransactionEnvelope, *, cancel: Optional[Cancellation] = None) -> _send.Submission:
        tx_hash = transaction_hash(envelope, self.config.network_passphrase)
        self._check(cancel, "submit", tx_hash)
        try:
            return _send.submit(
                self.client,
                envelope,
                network_passphrase=self.config.network_passphrase,
                timeout=self._timeout(cancel),
            )
        except Unreachable as e:
            if cancel is not None and cancel.cancelled:
                raise Cancelled("submit", tx_hash) from e
            raise

    def poll(self, submission: _send.Submission, *, cancel: Optional[Cancellation] = None) -> _send.Outcome:
        return _send.poll(
            self.client,
            submission,
            interval=self.config.poll_interval,
            max_attempts=self.config.poll_attempts,
            sleep=self.sleep,
            cancel=cancel,
            timeout=self.config.request_timeout,
            clock=self.clock,
        )

    # --- end to end ------------------------------------------------------

    def run(
        self,
        draft: Transaction,
        *,
        cancel: Optional[Cancellation] = None,
        expiration_ledger: Optional[int] = None,
        instructions: Optional[int] = None,
        skip_view: bool = False,
    ) -> PipelineResult:
        """
        Simulate, assemble, authorize, sign, submit and poll one draft.

        With `skip_view=True` a read-only call stops after assembly: the
        simulation already carries its result.
        """
        sim = self.simulate(draft, cancel=cancel)
        tx = self.assemble(draft, sim, instructions=instructions)
        result = PipelineResult(simulation=sim, transaction=tx)
        if skip_view and _assemble.is_view(tx):
            log.info("read-only call; not submitting")
            return result

        tx = self.authorize(tx, sim, expiration_ledger=expiration_ledger, cancel=cancel)
        result.transaction = tx
        result.envelope = self.sign(tx)
        result.submission = self.submit(result.envelope, cancel=cancel)
        self.poll(result.submission, cancel=cancel)
        return result


__all__ = ["Pipeline", "PipelineResult"]
