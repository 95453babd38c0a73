"""
soroban_pipeline.cli.tx: Transaction subcommands.

Implements:
  - soroban-tx tx simulate   Simulate a draft and print the assembled transaction
  - soroban-tx tx hash       Print the network hash of a transaction
  - soroban-tx tx sign       Add an envelope signature
  - soroban-tx tx send       Submit a signed envelope and wait for the outcome
  - soroban-tx tx run        Simulate, assemble, authorize, sign, submit and wait
  - soroban-tx tx fetch      Look up a transaction by hash
  - soroban-tx tx decode     Render wire text as JSON

WIRE arguments are base64 wire text; pass `-` (or nothing) to read stdin.
Exit codes: 0 success, 1 failed or error, 2 timeout (re-query by hash).
"""

from __future__ import annotations

import json
import logging
from typing import Any, List, Optional

import typer

from ..config import PipelineConfig
from ..errors import PipelineError
from ..pipeline import Pipeline
from ..rpc.client import SorobanRpc
from ..tx import send as _send
from ..tx.encode import decode_any, sign_envelope, to_json, to_wire, transaction_hash
from ..tx.envelope import Transaction, TransactionEnvelope
from ..wallet.signer import LocalKeySigner

log = logging.getLogger(__name__)

app = typer.Typer(help="Transaction operations (simulate, hash, sign, send, run, fetch, decode)")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_TIMEOUT = 2

_WIRE_HELP = "Base64 wire text, or '-' to read stdin"


def _config(ctx: typer.Context) -> PipelineConfig:
    obj = ctx.obj
    if obj is not None and getattr(obj, "config", None) is not None:
        return obj.config
    return PipelineConfig.from_env()


def _read_wire(value: Optional[str]) -> str:
    if value is None or value == "-":
        value = typer.get_text_stream("stdin").read()
    value = value.strip()
    if not value:
        raise _fail(ValueError("no wire input given"))
    return value


def _decode(value: Optional[str]) -> Any:
    try:
        return decode_any(_read_wire(value))
    except ValueError as e:
        raise _fail(e) from e


def _as_transaction(obj: Any) -> Transaction:
    if isinstance(obj, TransactionEnvelope):
        return obj.tx
    if isinstance(obj, Transaction):
        return obj
    raise _fail(ValueError(f"expected a transaction, got {type(obj).__name__}"))


def _as_envelope(obj: Any) -> TransactionEnvelope:
    if isinstance(obj, TransactionEnvelope):
        return obj
    if isinstance(obj, Transaction):
        return TransactionEnvelope(tx=obj)
    raise _fail(ValueError(f"expected a transaction envelope, got {type(obj).__name__}"))


def _signer(secret_keys: Optional[List[str]]) -> LocalKeySigner:
    try:
        return LocalKeySigner.from_seeds(secret_keys or [])
    except ValueError as e:
        raise _fail(e) from e


def _fail(e: Exception) -> typer.Exit:
    typer.echo(f"Error: {e}", err=True)
    return typer.Exit(EXIT_FAILED)


def _finish(outcome: Optional[_send.Outcome]) -> None:
    if outcome is None:
        return
    typer.echo(json.dumps(_send.outcome_to_dict(outcome), indent=2))
    if isinstance(outcome, _send.Timeout):
        typer.echo(outcome.advice, err=True)
        raise typer.Exit(EXIT_TIMEOUT)
    if isinstance(outcome, _send.Failed):
        raise typer.Exit(EXIT_FAILED)


@app.command()
def simulate(
    ctx: typer.Context,
    wire: Optional[str] = typer.Argument(None, help=_WIRE_HELP),
    instructions: Optional[int] = typer.Option(
        None, "--instructions", help="Override the simulated instruction budget"
    ),
    fee: Optional[int] = typer.Option(None, "--fee", help="Inclusion fee floor in stroops", envvar="SOROBAN_FEE"),
) -> None:
    """
    Simulate a draft transaction and print the assembled transaction as wire text.

    Examples:
      soroban-tx tx simulate AAAA...
      soroban-tx tx simulate --instructions 2000000 - < draft.txt
    """
    cfg = PipelineConfig.with_overrides(_config(ctx), base_fee=fee)
    draft = _as_transaction(_decode(wire))
    try:
        with SorobanRpc.from_config(cfg) as client:
            pipe = Pipeline(client, LocalKeySigner(), cfg)
            sim = pipe.simulate(draft)
            assembled = pipe.assemble(draft, sim, instructions=instructions)
    except PipelineError as e:
        raise _fail(e)
    typer.echo(to_wire(assembled))


@app.command("hash")
def hash_(
    ctx: typer.Context,
    wire: Optional[str] = typer.Argument(None, help=_WIRE_HELP),
) -> None:
    """Print the hex hash of a transaction on the configured network."""
    tx = _as_transaction(_decode(wire))
    typer.echo(transaction_hash(tx, _config(ctx).network_passphrase))


@app.command()
def sign(
    ctx: typer.Context,
    wire: Optional[str] = typer.Argument(None, help=_WIRE_HELP),
    secret_key: str = typer.Option(
        ..., "--secret-key", help="S... seed of the signing account", envvar="SOROBAN_SECRET_KEY"
    ),
) -> None:
    """
    Sign a transaction envelope and print it as wire text.

    Examples:
      soroban-tx tx sign --secret-key S... AAAA...
    """
    env = _as_envelope(_decode(wire))
    signer = _signer([secret_key])
    address = signer.addresses[0]
    try:
        signed = sign_envelope(env, signer, address, _config(ctx).network_passphrase)
    except PipelineError as e:
        raise _fail(e)
    typer.echo(to_wire(signed))


@app.command()
def send(
    ctx: typer.Context,
    wire: Optional[str] = typer.Argument(None, help=_WIRE_HELP),
) -> None:
    """
    Submit a signed envelope and wait for its outcome (printed as JSON).
    """
    cfg = _config(ctx)
    env = _as_envelope(_decode(wire))
    try:
        with SorobanRpc.from_config(cfg) as client:
            pipe = Pipeline(client, LocalKeySigner(), cfg)
            submission = pipe.submit(env)
            outcome = pipe.poll(submission)
    except PipelineError as e:
        raise _fail(e)
    _finish(outcome)


@app.command()
def run(
    ctx: typer.Context,
    wire: Optional[str] = typer.Argument(None, help=_WIRE_HELP),
    secret_keys: List[str] = typer.Option(
        [],
        "--secret-key",
        help="S... seed (repeatable); the source account key signs the envelope, any key may sign authorizations",
        envvar="SOROBAN_SECRET_KEY",
    ),
    expiration_ledger: Optional[int] = typer.Option(
        None, "--expiration-ledger", help="Explicit authorization expiration ledger"
    ),
    instructions: Optional[int] = typer.Option(
        None, "--instructions", help="Override the simulated instruction budget"
    ),
    skip_view: bool = typer.Option(
        False, "--skip-view", help="Do not submit read-only calls; print the simulation result instead"
    ),
    fee: Optional[int] = typer.Option(None, "--fee", help="Inclusion fee floor in stroops", envvar="SOROBAN_FEE"),
) -> None:
    """
    Run the whole pipeline on a draft transaction.

    Examples:
      soroban-tx tx run --secret-key S... AAAA...
      soroban-tx tx run --secret-key S...SOURCE --secret-key S...AUTH --expiration-ledger 1200 -
    """
    cfg = PipelineConfig.with_overrides(_config(ctx), base_fee=fee)
    draft = _as_transaction(_decode(wire))
    signer = _signer(secret_keys)
    try:
        with SorobanRpc.from_config(cfg) as client:
            pipe = Pipeline(client, signer, cfg)
            result = pipe.run(
                draft,
                expiration_ledger=expiration_ledger,
                instructions=instructions,
                skip_view=skip_view,
            )
    except PipelineError as e:
        raise _fail(e)
    if result.submission is None:
        sim = result.simulation
        typer.echo(json.dumps({"status": "view", "results": [r.retval for r in sim.results]}, indent=2))
        return
    _finish(result.outcome)


@app.command()
def fetch(
    ctx: typer.Context,
    tx_hash: str = typer.Argument(..., help="Transaction hash (hex)"),
) -> None:
    """Fetch a transaction's status by hash and print it as JSON."""
    cfg = _config(ctx)
    try:
        with SorobanRpc.from_config(cfg) as client:
            status = client.get_transaction(tx_hash, timeout=cfg.request_timeout)
    except PipelineError as e:
        raise _fail(e)
    typer.echo(
        json.dumps(
            {
                "status": status.status,
                "hash": tx_hash,
                "latestLedger": status.latest_ledger,
                "ledger": status.ledger,
                "result": status.result,
                "resultMeta": status.result_meta,
                "events": list(status.events),
            },
            indent=2,
        )
    )
    if status.status == _send.FAILED:
        raise typer.Exit(EXIT_FAILED)


@app.command()
def decode(
    wire: Optional[str] = typer.Argument(None, help=_WIRE_HELP),
) -> None:
    """Render wire text (envelope, transaction, auth entry, soroban data) as JSON."""
    typer.echo(to_json(_decode(wire)))
