from __future__ import annotations

import json
from typing import Any, List

import httpx
import pytest
import respx

from soroban_pipeline.config import PipelineConfig
from soroban_pipeline.errors import JsonRpcCode, RpcError, Unreachable
from soroban_pipeline.rpc.client import SorobanRpc
from soroban_pipeline.rpc.http import RpcClient
from soroban_pipeline.tx import encode
from soroban_pipeline.tx.envelope import TransactionEnvelope

RPC_URL = "http://localhost:9999/soroban/rpc"


def ok(result: Any) -> httpx.Response:
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": result})


@respx.mock
def test_request_returns_result() -> None:
    route = respx.post(RPC_URL).mock(return_value=ok({"sequence": 12}))
    with RpcClient(RPC_URL) as rpc:
        assert rpc.request("getLatestLedger") == {"sequence": 12}
    body = json.loads(route.calls.last.request.content)
    assert body["method"] == "getLatestLedger"
    assert body["jsonrpc"] == "2.0"
    assert "params" not in body


@respx.mock
def test_request_ids_increase() -> None:
    route = respx.post(RPC_URL).mock(return_value=ok(None))
    with RpcClient(RPC_URL) as rpc:
        rpc.request("a")
        rpc.request("b", {"x": 1})
    ids = [json.loads(c.request.content)["id"] for c in route.calls]
    assert ids == [1, 2]


@respx.mock
def test_error_object_becomes_rpc_error() -> None:
    respx.post(RPC_URL).mock(
        return_value=httpx.Response(
            200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32602, "message": "invalid params"}}
        )
    )
    with RpcClient(RPC_URL) as rpc:
        with pytest.raises(RpcError) as ei:
            rpc.request("simulateTransaction", {"transaction": "x"})
    assert ei.value.code == -32602
    assert ei.value.code_enum is JsonRpcCode.INVALID_PARAMS
    assert ei.value.method == "simulateTransaction"


@respx.mock
def test_string_error_keeps_message_and_request_id() -> None:
    respx.post(RPC_URL).mock(
        return_value=httpx.Response(200, json={"jsonrpc": "2.0", "id": 9, "error": "node is syncing"})
    )
    with RpcClient(RPC_URL) as rpc:
        with pytest.raises(RpcError, match="node is syncing") as ei:
            rpc.request("getHealth")
    assert ei.value.request_id == 9
    assert ei.value.http_status == 200


@respx.mock
def test_last_transport_failure_is_raised_after_retries() -> None:
    route = respx.post(RPC_URL).mock(
        side_effect=[httpx.ConnectError("connection refused"), httpx.Response(504)]
    )
    with RpcClient(RPC_URL, max_retries=1, sleep=lambda _: None) as rpc:
        with pytest.raises(Unreachable) as ei:
            rpc.request("getHealth")
    assert ei.value.http_status == 504
    assert ei.value.method == "getHealth"
    assert route.call_count == 2


@respx.mock
def test_service_unavailable_is_retried_then_unreachable() -> None:
    route = respx.post(RPC_URL).mock(return_value=httpx.Response(503))
    delays: List[float] = []
    with RpcClient(RPC_URL, max_retries=2, sleep=delays.append) as rpc:
        with pytest.raises(Unreachable) as ei:
            rpc.request("getHealth")
    assert ei.value.http_status == 503
    assert route.call_count == 3
    assert len(delays) == 2


@respx.mock
def test_retry_recovers() -> None:
    respx.post(RPC_URL).mock(side_effect=[httpx.Response(502), ok("fine")])
    with RpcClient(RPC_URL, max_retries=1, sleep=lambda _: None) as rpc:
        assert rpc.request("getHealth") == "fine"


@respx.mock
def test_no_retries_by_default() -> None:
    route = respx.post(RPC_URL).mock(return_value=httpx.Response(429))
    with RpcClient(RPC_URL) as rpc:
        with pytest.raises(Unreachable):
            rpc.request("getHealth")
    assert route.call_count == 1


@respx.mock
def test_connection_error_is_unreachable() -> None:
    respx.post(RPC_URL).mock(side_effect=httpx.ConnectError("connection refused"))
    with RpcClient(RPC_URL) as rpc:
        with pytest.raises(Unreachable, match="ConnectError") as ei:
            rpc.request("getHealth")
    assert ei.value.retryable
    assert isinstance(ei.value.__cause__, httpx.ConnectError)


@respx.mock
def test_non_json_reply() -> None:
    respx.post(RPC_URL).mock(return_value=httpx.Response(200, text="<html>oops</html>"))
    with RpcClient(RPC_URL) as rpc:
        with pytest.raises(RpcError, match="Non-JSON"):
            rpc.request("getHealth")


@respx.mock
def test_reply_without_result() -> None:
    respx.post(RPC_URL).mock(return_value=httpx.Response(200, json={"jsonrpc": "2.0", "id": 1}))
    with RpcClient(RPC_URL) as rpc:
        with pytest.raises(RpcError, match="Malformed"):
            rpc.request("getHealth")


def test_closed_client_is_unreachable() -> None:
    rpc = RpcClient(RPC_URL)
    rpc.close()
    with pytest.raises(Unreachable, match="closed"):
        rpc.request("getHealth")


# ---------- typed node client ----------


@pytest.fixture
def soroban() -> SorobanRpc:
    client = SorobanRpc.from_config(PipelineConfig(rpc_url=RPC_URL))
    yield client
    client.close()


@respx.mock
def test_simulate_transaction_parses(soroban, make_draft, make_entry) -> None:
    route = respx.post(RPC_URL).mock(
        return_value=ok(
            {
                "latestLedger": 2000,
                "minResourceFee": "12345",
                "results": [{"auth": [encode.to_wire(make_entry())], "xdr": "AAAA"}],
                "events": ["e1", "e2"],
            }
        )
    )
    draft = make_draft()
    sim = soroban.simulate_transaction(draft)
    assert sim.latest_ledger == 2000
    assert sim.min_resource_fee == 12345
    assert sim.auth == (make_entry(),)
    assert sim.events == ("e1", "e2")
    sent = json.loads(route.calls.last.request.content)
    assert sent["method"] == "simulateTransaction"
    assert encode.from_wire(sent["params"]["transaction"], TransactionEnvelope).tx == draft


@respx.mock
def test_send_and_get_transaction(soroban, make_draft) -> None:
    respx.post(RPC_URL).mock(
        side_effect=[
            ok({"status": "pending", "hash": "ab" * 32, "latestLedger": 10}),
            ok({"status": "SUCCESS", "latestLedger": 11, "ledger": "11", "resultXdr": "r", "resultMetaXdr": "m"}),
        ]
    )
    sent = soroban.send_transaction(TransactionEnvelope(make_draft()))
    assert sent.status == "PENDING"
    assert sent.hash == "ab" * 32
    got = soroban.get_transaction(sent.hash)
    assert got.status == "SUCCESS"
    assert got.ledger == 11
    assert got.result == "r" and got.result_meta == "m"


@respx.mock
def test_latest_ledger(soroban) -> None:
    respx.post(RPC_URL).mock(return_value=ok({"id": "abc", "sequence": 777, "protocolVersion": "21"}))
    ledger = soroban.get_latest_ledger()
    assert ledger.sequence == 777
    assert ledger.protocol_version == 21


@respx.mock
def test_unexpected_result_shape(soroban) -> None:
    respx.post(RPC_URL).mock(return_value=ok([1, 2, 3]))
    with pytest.raises(RpcError, match="unexpected result shape"):
        soroban.get_latest_ledger()


@respx.mock
def test_network_passphrase_check(soroban, passphrase) -> None:
    respx.post(RPC_URL).mock(return_value=ok({"passphrase": "Public Global Stellar Network ; September 2015"}))
    with pytest.raises(ValueError, match="mismatch"):
        soroban.verify_network_passphrase(passphrase)
