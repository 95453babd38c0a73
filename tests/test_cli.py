from __future__ import annotations

import json
from typing import Any, Dict, List

import httpx
import pytest
import respx
from typer.testing import CliRunner

from soroban_pipeline.cli.main import app
from soroban_pipeline.tx import encode
from soroban_pipeline.tx.envelope import LedgerFootprint, SorobanData, SorobanResources, TransactionEnvelope
from soroban_pipeline.wallet.signer import verify

runner = CliRunner()

RPC_URL = "http://localhost:9999/soroban/rpc"
TX_HASH = "ab" * 32


@pytest.fixture(autouse=True)
def _env(monkeypatch: Any) -> None:
    monkeypatch.setenv("SOROBAN_RPC_URL", RPC_URL)
    monkeypatch.setenv("SOROBAN_POLL_INTERVAL", "0")
    monkeypatch.setenv("SOROBAN_POLL_ATTEMPTS", "3")
    monkeypatch.delenv("SOROBAN_SECRET_KEY", raising=False)
    monkeypatch.delenv("SOROBAN_FEE", raising=False)


def scripted(answers: Dict[str, List[Any]]):
    """respx side effect answering each JSON-RPC method from its own queue."""

    def _answer(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        queue = answers[body["method"]]
        result = queue.pop(0) if len(queue) > 1 else queue[0]
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    return _answer


def simulation(read_write=("balance",), error=None) -> Dict[str, Any]:
    if error is not None:
        return {"latestLedger": 1000, "error": error, "events": ["trap event"]}
    data = SorobanData(resources=SorobanResources(LedgerFootprint(("code",), tuple(read_write)), instructions=10))
    return {
        "latestLedger": 1000,
        "minResourceFee": "100",
        "results": [{"auth": [], "xdr": "AAAA"}],
        "transactionData": encode.to_wire(data),
        "events": [],
    }


def test_version() -> None:
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "soroban-tx 0.1.0" in result.output


def test_decode(make_draft) -> None:
    result = runner.invoke(app, ["tx", "decode", encode.to_wire(make_draft())])
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["seqNum"] == 42
    assert data["operations"][0]["body"]["kind"] == "invoke_contract"


def test_decode_garbage_exits_1() -> None:
    result = runner.invoke(app, ["tx", "decode", "not-wire-text"])
    assert result.exit_code == 1
    assert "Error:" in result.output


def test_hash_from_stdin(make_draft, passphrase) -> None:
    draft = make_draft()
    result = runner.invoke(app, ["tx", "hash", "-"], input=encode.to_wire(draft) + "\n")
    assert result.exit_code == 0
    assert result.stdout.strip() == encode.transaction_hash(draft, passphrase)


def test_sign(make_draft, keys, passphrase) -> None:
    draft = make_draft()
    result = runner.invoke(app, ["tx", "sign", "--secret-key", keys.source_seed, encode.to_wire(draft)])
    assert result.exit_code == 0
    env = encode.from_wire(result.stdout.strip(), TransactionEnvelope)
    (sig,) = env.signatures
    assert verify(keys.source, encode.transaction_hash_bytes(draft, passphrase), sig.signature)


def test_sign_with_bad_seed_exits_1(make_draft) -> None:
    result = runner.invoke(app, ["tx", "sign", "--secret-key", "SNOTASEED", encode.to_wire(make_draft())])
    assert result.exit_code == 1
    assert "invalid secret seed" in result.output


@respx.mock
def test_simulate_prints_assembled_transaction(make_draft) -> None:
    respx.post(RPC_URL).mock(side_effect=scripted({"simulateTransaction": [simulation()]}))
    result = runner.invoke(app, ["tx", "simulate", "--instructions", "99", encode.to_wire(make_draft())])
    assert result.exit_code == 0
    from soroban_pipeline.tx.envelope import Transaction

    tx = encode.from_wire(result.stdout.strip(), Transaction)
    assert tx.fee == 200
    assert tx.soroban_data.resources.instructions == 99


@respx.mock
def test_simulate_error_exits_1(make_draft) -> None:
    respx.post(RPC_URL).mock(side_effect=scripted({"simulateTransaction": [simulation(error="contract trapped")]}))
    result = runner.invoke(app, ["tx", "simulate", encode.to_wire(make_draft())])
    assert result.exit_code == 1
    assert "contract trapped" in result.output


@respx.mock
def test_run_success(make_draft, keys) -> None:
    route = respx.post(RPC_URL).mock(
        side_effect=scripted(
            {
                "simulateTransaction": [simulation()],
                "sendTransaction": [{"status": "PENDING", "hash": TX_HASH, "latestLedger": 1000}],
                "getTransaction": [
                    {"status": "NOT_FOUND", "latestLedger": 1000},
                    {"status": "SUCCESS", "latestLedger": 1001, "ledger": 1001, "resultXdr": "ok"},
                ],
            }
        )
    )
    result = runner.invoke(app, ["tx", "run", "--secret-key", keys.source_seed, encode.to_wire(make_draft())])
    assert result.exit_code == 0, result.output
    out = json.loads(result.stdout)
    assert out["status"] == "success"
    assert out["hash"] == TX_HASH
    assert out["ledger"] == 1001
    methods = [json.loads(c.request.content)["method"] for c in route.calls]
    assert methods == ["simulateTransaction", "sendTransaction", "getTransaction", "getTransaction"]


@respx.mock
def test_run_view_is_not_submitted(make_draft, keys) -> None:
    route = respx.post(RPC_URL).mock(side_effect=scripted({"simulateTransaction": [simulation(read_write=())]}))
    result = runner.invoke(
        app, ["tx", "run", "--skip-view", "--secret-key", keys.source_seed, encode.to_wire(make_draft())]
    )
    assert result.exit_code == 0
    assert json.loads(result.stdout) == {"status": "view", "results": ["AAAA"]}
    assert route.call_count == 1


@respx.mock
def test_send_timeout_exits_2(make_draft, keys, passphrase) -> None:
    route = respx.post(RPC_URL).mock(
        side_effect=scripted(
            {
                "sendTransaction": [{"status": "PENDING", "hash": TX_HASH}],
                "getTransaction": [{"status": "NOT_FOUND", "latestLedger": 1000}],
            }
        )
    )
    env = encode.sign_envelope(make_draft(), _local(keys), keys.source, passphrase)
    result = runner.invoke(app, ["tx", "send", encode.to_wire(env)])
    assert result.exit_code == 2
    assert "timeout" in result.output
    assert "may still apply" in result.output
    assert route.call_count == 1 + 3


@respx.mock
def test_send_rejected_exits_1(make_draft) -> None:
    respx.post(RPC_URL).mock(
        side_effect=scripted({"sendTransaction": [{"status": "ERROR", "hash": TX_HASH, "errorResultXdr": "txBAD_SEQ"}]})
    )
    result = runner.invoke(app, ["tx", "send", encode.to_wire(TransactionEnvelope(make_draft()))])
    assert result.exit_code == 1
    assert "txBAD_SEQ" in result.output


@respx.mock
def test_fetch_failed_exits_1() -> None:
    respx.post(RPC_URL).mock(
        side_effect=scripted({"getTransaction": [{"status": "FAILED", "latestLedger": 1001, "ledger": 1000}]})
    )
    result = runner.invoke(app, ["tx", "fetch", TX_HASH])
    assert result.exit_code == 1
    assert json.loads(result.stdout)["status"] == "FAILED"


@respx.mock
def test_unreachable_node_exits_1(make_draft) -> None:
    respx.post(RPC_URL).mock(side_effect=httpx.ConnectError("connection refused"))
    result = runner.invoke(app, ["tx", "simulate", encode.to_wire(make_draft())])
    assert result.exit_code == 1
    assert "Unreachable" in result.output


def test_invalid_rpc_url_exits_1(monkeypatch: Any) -> None:
    monkeypatch.setenv("SOROBAN_RPC_URL", "ftp://nope")
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 1
    assert "invalid configuration" in result.output


def _local(keys):
    from soroban_pipeline.wallet.signer import LocalKeySigner

    return LocalKeySigner.from_seeds([keys.source_seed])
