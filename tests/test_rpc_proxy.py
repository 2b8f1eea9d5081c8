"""Tests for the RPC failover proxy."""

from unittest.mock import MagicMock

import pytest
import requests

from stage_4.rpc_proxy import FORWARD_FAILURE_CODE, RpcFailoverProxy
from workflow.errors import NetworkExhaustedError, RpcError, ValidationError


def _response(status=200, body=None, bad_json=False):
    response = MagicMock()
    response.status_code = status
    if bad_json:
        response.json.side_effect = ValueError("not json")
    else:
        response.json.return_value = body
    return response


def _router(behaviour):
    """session.post side effect: url -> response, exception, or callable(payload)"""
    calls = []

    def post(url, json=None, timeout=None):
        calls.append(url)
        action = behaviour[url]
        if isinstance(action, Exception):
            raise action
        if isinstance(action, MagicMock):
            return action
        return action(json)

    return post, calls


def _ok(result):
    return lambda payload: _response(body={"jsonrpc": "2.0", "id": payload["id"], "result": result})


def _err(code, message):
    return lambda payload: _response(
        body={"jsonrpc": "2.0", "id": payload["id"], "error": {"code": code, "message": message}}
    )


@pytest.fixture
def make_proxy(networks):
    def _make(behaviour):
        session = MagicMock()
        post, calls = _router(behaviour)
        session.post.side_effect = post
        return RpcFailoverProxy(networks=networks, timeout=1, session=session), calls
    return _make


def test_third_endpoint_answers_after_two_failures(make_proxy):
    proxy, calls = make_proxy({
        "https://e1.example": requests.ConnectionError("refused"),
        "https://e2.example": _response(status=503),
        "https://e3.example": _ok("0x10"),
    })
    assert proxy.call("sepolia", "eth_blockNumber") == "0x10"
    assert calls == ["https://e1.example", "https://e2.example", "https://e3.example"]


def test_first_good_endpoint_stops_failover(make_proxy):
    proxy, calls = make_proxy({
        "https://e1.example": _ok("0x1"),
        "https://e2.example": _ok("0x2"),
        "https://e3.example": _ok("0x3"),
    })
    assert proxy.call("sepolia", "eth_chainId") == "0x1"
    assert calls == ["https://e1.example"]


def test_all_endpoints_failing_names_network_and_last_error(make_proxy):
    proxy, _ = make_proxy({
        "https://e1.example": requests.Timeout("slow"),
        "https://e2.example": _response(status=429),
        "https://e3.example": _response(bad_json=True),
    })
    with pytest.raises(NetworkExhaustedError) as exc_info:
        proxy.call("sepolia", "eth_getBalance", ["0xabc", "latest"])
    message = str(exc_info.value)
    assert "sepolia" in message
    assert "malformed JSON response" in message
    assert exc_info.value.method == "eth_getBalance"


def test_rate_limited_rpc_error_fails_over(make_proxy):
    proxy, calls = make_proxy({
        "https://e1.example": _err(-32005, "daily request limit exceeded"),
        "https://e2.example": _ok("0x2"),
        "https://e3.example": _ok("0x3"),
    })
    assert proxy.call("sepolia", "eth_gasPrice") == "0x2"
    assert len(calls) == 2


def test_node_error_is_raised_without_failover(make_proxy):
    proxy, calls = make_proxy({
        "https://e1.example": _err(3, "execution reverted"),
        "https://e2.example": _ok("0x2"),
        "https://e3.example": _ok("0x3"),
    })
    with pytest.raises(RpcError) as exc_info:
        proxy.call("sepolia", "eth_estimateGas", [{}])
    assert exc_info.value.code == 3
    assert calls == ["https://e1.example"]


def test_response_with_wrong_id_is_rejected(make_proxy):
    stale = lambda payload: _response(body={"jsonrpc": "2.0", "id": 99999, "result": "0xdead"})
    proxy, _ = make_proxy({
        "https://e1.example": stale,
        "https://e2.example": _ok("0x2"),
        "https://e3.example": _ok("0x3"),
    })
    assert proxy.call("sepolia", "eth_blockNumber") == "0x2"


def test_null_result_is_a_valid_answer(make_proxy):
    proxy, calls = make_proxy({
        "https://e1.example": _ok(None),
        "https://e2.example": _ok("0x2"),
        "https://e3.example": _ok("0x3"),
    })
    assert proxy.call("sepolia", "eth_getTransactionReceipt", ["0x1"]) is None
    assert len(calls) == 1


def test_unknown_network_is_a_validation_error(make_proxy):
    proxy, calls = make_proxy({})
    with pytest.raises(ValidationError):
        proxy.call("goerli", "eth_chainId")
    assert calls == []


def test_forward_keeps_request_id(make_proxy):
    def echo(payload):
        return _response(body={"jsonrpc": "2.0", "id": payload["id"], "result": "0xaa36a7"})

    proxy, _ = make_proxy({
        "https://e1.example": echo,
        "https://e2.example": echo,
        "https://e3.example": echo,
    })
    response = proxy.forward({"jsonrpc": "2.0", "id": "client-7", "method": "eth_chainId"}, "sepolia")
    assert response["id"] == "client-7"
    assert response["result"] == "0xaa36a7"


def test_forward_synthesizes_error_when_exhausted(make_proxy):
    failure = requests.ConnectionError("down")
    proxy, _ = make_proxy({
        "https://e1.example": failure,
        "https://e2.example": failure,
        "https://e3.example": failure,
    })
    response = proxy.forward({"jsonrpc": "2.0", "id": 4, "method": "eth_blockNumber"}, "sepolia")
    assert response["id"] == 4
    assert response["error"]["code"] == FORWARD_FAILURE_CODE
    assert "sepolia" in response["error"]["message"]


def test_provider_is_bound_to_last_good_endpoint(make_proxy):
    proxy, calls = make_proxy({
        "https://e1.example": requests.ConnectionError("refused"),
        "https://e2.example": _ok("0xaa36a7"),
        "https://e3.example": _ok("0xaa36a7"),
    })
    provider = proxy.provider_for("sepolia")
    assert provider.url == "https://e2.example"
    calls.clear()
    assert provider.request("eth_chainId") == "0xaa36a7"
    assert calls == ["https://e2.example"]


def test_provider_does_not_fail_over(make_proxy):
    from stage_4.rpc_proxy import EndpointError

    state = {"up": True}

    def flaky(payload):
        if state["up"]:
            return _ok("0x1")(payload)
        raise requests.ConnectionError("gone")

    proxy, calls = make_proxy({
        "https://e1.example": flaky,
        "https://e2.example": _ok("0x2"),
        "https://e3.example": _ok("0x3"),
    })
    provider = proxy.provider_for("sepolia")
    state["up"] = False
    calls.clear()
    with pytest.raises(EndpointError):
        provider.request("eth_sendRawTransaction", ["0x00"])
    assert calls == ["https://e1.example"]


def test_health_check_reports_each_endpoint(make_proxy):
    proxy, _ = make_proxy({
        "https://e1.example": _ok("0x10"),
        "https://e2.example": requests.ConnectionError("refused"),
        "https://e3.example": _err(-32603, "internal error"),
    })
    report = proxy.health_check()
    entries = report["sepolia"]
    assert [e["healthy"] for e in entries] == [True, False, False]
    assert entries[0]["block_number"] == 16
    assert entries[1]["error"]
