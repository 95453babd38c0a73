"""
HTTP JSON-RPC client (sync) for Soroban RPC nodes.

- Uses httpx; friendly to unit tests and mocks (respx).
- Optionally retries on transient transport failures and 429/5xx HTTP.
  Pipeline callers keep `max_retries=0`: retrying a stage is their decision.
- Never leaks raw httpx exceptions: transport problems surface as
  `Unreachable`, JSON-RPC error objects as `RpcError`.

Example:
    from soroban_pipeline.rpc.http import RpcClient
    with RpcClient("http://localhost:8000/soroban/rpc") as rpc:
        print(rpc.request("getLatestLedger")["sequence"])
"""

from __future__ import annotations

import json
import logging
import random
import time
from dataclasses import dataclass, field
from itertools import count
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Sequence, Union

import httpx

from ..errors import JsonRpcCode, RpcError, Unreachable, raise_for_jsonrpc_result
from ..version import user_agent

log = logging.getLogger(__name__)

JSON = Union[dict, list, str, int, float, bool, None]
Params = Union[Sequence[Any], Mapping[str, Any], None]


def _is_retriable_http(status: int) -> bool:
    # Typical transient HTTP statuses
    return status in (429, 500, 502, 503, 504)


def _jitter_backoff(base: float, factor: float, attempt: int, jitter: float) -> float:
    # Exponential backoff with jitter in [0, jitter]
    return base * (factor ** max(attempt - 1, 0)) + random.random() * jitter


@dataclass
class RpcClient:
    """Synchronous JSON-RPC 2.0 client over HTTP."""

    url: str
    timeout: float = 30.0
    max_retries: int = 0
    backoff_base: float = 0.15
    backoff_factor: float = 1.8
    backoff_jitter: float = 0.2
    headers: Optional[Mapping[str, str]] = None
    transport: Optional[httpx.BaseTransport] = None
    sleep: Callable[[float], None] = time.sleep
    _id_counter: Iterator[int] = field(default_factory=lambda: count(start=1))
    _client: Optional[httpx.Client] = field(init=False, default=None)

    def __post_init__(self) -> None:
        merged_headers: Dict[str, str] = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": user_agent(),
        }
        if self.headers:
            merged_headers.update(dict(self.headers))
        self._client = httpx.Client(
            timeout=self.timeout,
            headers=merged_headers,
            transport=self.transport,
        )

    # --- context manager -------------------------------------------------

    def __enter__(self) -> "RpcClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        self.close()

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    # --- public API ------------------------------------------------------

    def request(
        self,
        method: str,
        params: Params = None,
        *,
        timeout: Optional[float] = None,
    ) -> JSON:
        """Perform a single JSON-RPC request and return `result`.

        Raises `RpcError` for JSON-RPC error objects or malformed replies and
        `Unreachable` when the node cannot be reached.
        """
        payload = self._make_payload(method, params)
        return self._send_with_retries(method, payload, timeout)

    # --- internals -------------------------------------------------------

    def _make_payload(self, method: str, params: Params) -> Dict[str, Any]:
        rid = next(self._id_counter)
        if params is None:
            body: Dict[str, Any] = {"jsonrpc": "2.0", "id": rid, "method": method}
            return body
        if isinstance(params, Mapping):
            params = dict(params)
        elif isinstance(params, Sequence) and not isinstance(params, (str, bytes, bytearray)):
            params = list(params)
        else:
            # Coerce single param into positional list
            params = [params]  # type: ignore[list-item]
        return {"jsonrpc": "2.0", "id": rid, "method": method, "params": params}

    def _send_with_retries(self, method: str, payload: Dict[str, Any], timeout: Optional[float]) -> JSON:
        attempt = 1
        while True:
            try:
                return self._send_once(method, payload, timeout)
            except Unreachable as e:
                if attempt > self.max_retries:  # N retries -> N+1 attempts
                    raise
                delay = _jitter_backoff(self.backoff_base, self.backoff_factor, attempt, self.backoff_jitter)
                log.debug("retrying %s after %s (attempt %d, delay %.2fs)", method, e, attempt, delay)
                self.sleep(delay)
                attempt += 1

    def _send_once(self, method: str, payload: Dict[str, Any], timeout: Optional[float]) -> JSON:
        if self._client is None:
            raise Unreachable("client is closed", method=method)
        body = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
        kwargs: Dict[str, Any] = {"content": body}
        if timeout is not None:
            kwargs["timeout"] = timeout
        try:
            r = self._client.post(self.url, **kwargs)
        except httpx.TransportError as e:
            raise Unreachable(f"{type(e).__name__}: {e}", method=method) from e
        if _is_retriable_http(r.status_code):
            raise Unreachable(f"HTTP {r.status_code}", method=method, http_status=r.status_code)
        # Avoid raise_for_status() to keep the error body visible below
        try:
            resp = r.json()
        except ValueError as e:
            raise RpcError(
                method=method,
                code=JsonRpcCode.INTERNAL_ERROR,
                message="Non-JSON response from RPC",
                data=f"HTTP {r.status_code}: {r.text[:256]}",
                http_status=r.status_code,
            ) from e

        if not isinstance(resp, dict):
            raise RpcError(
                method=method,
                code=JsonRpcCode.INTERNAL_ERROR,
                message="Invalid JSON-RPC response type",
                data=type(resp).__name__,
                http_status=r.status_code,
            )
        raise_for_jsonrpc_result(resp, method=method, http_status=r.status_code)
        if "result" not in resp:
            raise RpcError(
                method=method,
                code=JsonRpcCode.INTERNAL_ERROR,
                message="Malformed JSON-RPC response",
                data=resp,
                http_status=r.status_code,
            )
        return resp["result"]


__all__ = ["RpcClient", "JSON", "Params"]
