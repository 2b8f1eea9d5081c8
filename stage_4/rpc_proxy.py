"""
RPC Failover Proxy
==================

Sends JSON-RPC requests to the configured endpoints of a network in
priority order and returns the first good answer. Transport failures,
rate limiting and malformed responses move on to the next endpoint; a
genuine node error (e.g. an execution revert during estimation) is raised
immediately since every other node would answer the same way.
"""

import itertools
import threading
import time
from typing import Any, Dict, List, Mapping, Optional

import requests

import config
from workflow.errors import NetworkExhaustedError, RpcError, ValidationError

from .networks import NetworkConfig, load_networks

RETRYABLE_HTTP_STATUS = {403, 408, 429}
RETRYABLE_RPC_CODES = {-32005, -32601, -32603, 429}
RETRYABLE_RPC_MESSAGES = (
    "rate limit",
    "too many requests",
    "header not found",
    "limit exceeded",
    "temporarily unavailable",
)

# Code used for the synthesized response when forwarding fails everywhere
FORWARD_FAILURE_CODE = -32000


class EndpointError(Exception):
    """A single endpoint could not produce a usable response"""

    def __init__(self, endpoint: str, message: str):
        super().__init__(message)
        self.endpoint = endpoint


def short_url(url: str) -> str:
    return url if len(url) <= 50 else url[:47] + "..."


def is_retryable_rpc_error(error: Dict) -> bool:
    if error.get("code") in RETRYABLE_RPC_CODES:
        return True
    message = str(error.get("message", "")).lower()
    return any(marker in message for marker in RETRYABLE_RPC_MESSAGES)


def post_json_rpc(session: requests.Session, url: str, payload: Dict, timeout: float) -> Dict:
    """
    POST one JSON-RPC request to one endpoint.

    Returns the decoded response object, which holds either "result" or
    "error".

    Raises:
        EndpointError: Transport failure, bad HTTP status, malformed body,
            or a response whose id does not match the request
    """
    try:
        response = session.post(url, json=payload, timeout=timeout)
    except requests.RequestException as e:
        raise EndpointError(url, f"{type(e).__name__}: {e}")

    if response.status_code in RETRYABLE_HTTP_STATUS or response.status_code >= 500:
        raise EndpointError(url, f"HTTP {response.status_code}")
    if response.status_code != 200:
        raise EndpointError(url, f"unexpected HTTP {response.status_code}")

    try:
        body = response.json()
    except ValueError:
        raise EndpointError(url, "malformed JSON response")

    if not isinstance(body, dict) or ("result" not in body and "error" not in body):
        raise EndpointError(url, "malformed JSON-RPC response")
    if body.get("id") != payload.get("id"):
        raise EndpointError(url, f"response id {body.get('id')!r} does not match request id {payload.get('id')!r}")
    return body


class RpcProvider:
    """Client bound to one endpoint, used once a transaction is signed"""

    def __init__(self, url: str, network: str, session: requests.Session, timeout: float, ids):
        self.url = url
        self.network = network
        self._session = session
        self._timeout = timeout
        self._ids = ids

    def request(self, method: str, params: Optional[List] = None) -> Any:
        """
        Raises:
            EndpointError: The endpoint could not be reached or answered garbage
            RpcError: The node answered with an error object
        """
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params or []}
        body = post_json_rpc(self._session, self.url, payload, self._timeout)
        if body.get("error"):
            error = body["error"]
            raise RpcError(error.get("code", FORWARD_FAILURE_CODE), error.get("message", "unknown error"), error.get("data"))
        return body.get("result")

    def __repr__(self):
        return f"RpcProvider({self.network}, {short_url(self.url)})"


class RpcFailoverProxy:
    """Multi-endpoint JSON-RPC client with sequential failover"""

    def __init__(
        self,
        networks: Optional[Mapping[str, NetworkConfig]] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
        verbose: bool = False,
    ):
        self.networks = networks if networks is not None else load_networks()
        self.timeout = timeout or config.RPC_TIMEOUT
        self.session = session or requests.Session()
        self.verbose = verbose
        self._ids = itertools.count(1)
        self._last_good: Dict[str, str] = {}
        self._lock = threading.Lock()

    def network(self, name: str) -> NetworkConfig:
        if name not in self.networks:
            raise ValidationError(
                f"Unknown network '{name}'. Available: {', '.join(sorted(self.networks))}"
            )
        return self.networks[name]

    def _ordered_endpoints(self, name: str) -> List[str]:
        """Configured order; failover always starts from the highest priority endpoint"""
        return list(self.network(name).endpoints)

    def _remember(self, network: str, url: str) -> None:
        with self._lock:
            self._last_good[network] = url

    def _send(self, network: str, payload: Dict) -> Dict:
        """
        Try each endpoint until one answers with a result or a non-retryable error.

        Raises:
            NetworkExhaustedError: If every endpoint failed
        """
        last_error = None
        method = payload.get("method", "?")

        for url in self._ordered_endpoints(network):
            if self.verbose:
                print(f"    [DEBUG] {method} -> {short_url(url)}")
            try:
                body = post_json_rpc(self.session, url, payload, self.timeout)
            except EndpointError as e:
                last_error = f"{short_url(url)}: {e}"
                print(f"    ⚠️  RPC endpoint failed ({last_error})")
                continue

            error = body.get("error")
            if error and is_retryable_rpc_error(error):
                last_error = f"{short_url(url)}: RPC error {error.get('code')}: {error.get('message')}"
                print(f"    ⚠️  RPC endpoint failed ({last_error})")
                continue

            self._remember(network, url)
            return body

        raise NetworkExhaustedError(network, method, last_error)

    def call(self, network: str, method: str, params: Optional[List] = None) -> Any:
        """
        Invoke a JSON-RPC method with failover.

        Returns:
            The "result" member of the first good response

        Raises:
            ValidationError: Unknown network
            RpcError: A node returned a non-retryable error
            NetworkExhaustedError: Every endpoint failed
        """
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params or []}
        body = self._send(network, payload)
        if body.get("error"):
            error = body["error"]
            raise RpcError(error.get("code", FORWARD_FAILURE_CODE), error.get("message", "unknown error"), error.get("data"))
        return body.get("result")

    def forward(self, payload: Dict, network: Optional[str] = None) -> Dict:
        """
        Relay a raw JSON-RPC request, keeping its id.

        Always returns a JSON-RPC response object; when every endpoint
        fails, a synthesized error response carries the failure summary.
        """
        network = network or config.DEFAULT_NETWORK
        request = {
            "jsonrpc": "2.0",
            "id": payload.get("id"),
            "method": payload.get("method"),
            "params": payload.get("params", []),
        }
        try:
            return self._send(network, request)
        except (NetworkExhaustedError, ValidationError) as e:
            return {
                "jsonrpc": "2.0",
                "id": payload.get("id"),
                "error": {"code": FORWARD_FAILURE_CODE, "message": str(e)},
            }

    def provider_for(self, network: str) -> RpcProvider:
        """
        Single-endpoint provider on the last endpoint that answered.

        Signed transactions are broadcast exactly once through this handle;
        they are never replayed across endpoints.
        """
        if network not in self._last_good:
            self.call(network, "eth_chainId")
        with self._lock:
            url = self._last_good[network]
        return RpcProvider(url, network, self.session, self.timeout, self._ids)

    def health_check(self, networks: Optional[List[str]] = None) -> Dict[str, List[Dict]]:
        """Probe every endpoint with eth_blockNumber"""
        report = {}
        for name in networks or sorted(self.networks):
            results = []
            for url in self._ordered_endpoints(name):
                payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": "eth_blockNumber", "params": []}
                start = time.monotonic()
                entry = {"endpoint": url, "healthy": False, "latency_ms": None, "block_number": None, "error": None}
                try:
                    body = post_json_rpc(self.session, url, payload, self.timeout)
                    if body.get("error"):
                        entry["error"] = str(body["error"].get("message", "RPC error"))
                    else:
                        entry["healthy"] = True
                        entry["block_number"] = int(body["result"], 16)
                except EndpointError as e:
                    entry["error"] = str(e)
                except (TypeError, ValueError):
                    entry["error"] = "invalid block number"
                entry["latency_ms"] = round((time.monotonic() - start) * 1000)
                results.append(entry)
            report[name] = results
        return report
