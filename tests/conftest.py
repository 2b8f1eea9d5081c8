"""Pytest fixtures for pipeline tests."""

import sys
from pathlib import Path

import pytest

# Ensure the stage packages are importable when running from any directory
_root = Path(__file__).resolve().parent.parent
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))

from stage_4.networks import NetworkConfig
from workflow.errors import RpcError
from workflow.models import (
    CompileArtifact,
    DetectionReport,
    Finding,
    Severity,
    content_hash,
)
from workflow.store import WorkflowStateStore

# Well-known throwaway key from the eth-account documentation
TEST_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
TEST_ADDRESS = "0x2c7536E3605D9C16a7a3D7b1898e529396a65c23"

SAMPLE_CODE = """// SPDX-License-Identifier: MIT
pragma solidity ^0.8.20;

contract Vault {
    mapping(address => uint256) public balances;

    function deposit() external payable {
        balances[msg.sender] += msg.value;
    }
}
"""

SAMPLE_BYTECODE = "0x6080604052348015600f57600080fd5b50603f80601d6000396000f3fe"


def make_finding(severity: Severity, kind: str = "reentrancy-eth", line: int = 7) -> Finding:
    return Finding(kind=kind, line=line, severity=severity, suggestion=f"{kind} detected")


def make_report(code: str = SAMPLE_CODE, **counts) -> DetectionReport:
    """Report with the given number of findings per severity, e.g. high=1"""
    findings = []
    for severity in Severity:
        findings.extend(make_finding(severity) for _ in range(counts.get(severity.name.lower(), 0)))
    return DetectionReport(findings=tuple(findings), code_hash=content_hash(code))


def make_artifact(code: str = SAMPLE_CODE, bytecode: str = SAMPLE_BYTECODE) -> CompileArtifact:
    return CompileArtifact(
        success=True,
        abi=[],
        bytecode=bytecode,
        contract_name="Vault",
        source_hash=content_hash(code),
    )


@pytest.fixture
def networks():
    return {
        "sepolia": NetworkConfig(
            key="sepolia",
            name="Sepolia Testnet",
            chain_id=11155111,
            currency="ETH",
            explorer="https://sepolia.etherscan.io",
            endpoints=("https://e1.example", "https://e2.example", "https://e3.example"),
        ),
    }


@pytest.fixture
def store():
    return WorkflowStateStore()


@pytest.fixture
def ready_store():
    """Store holding compiled code with a clean report"""
    s = WorkflowStateStore()
    s.set_generated_code(SAMPLE_CODE, make_artifact())
    s.set_detection_report(make_report(informational=2, optimization=1))
    return s


class FakeProvider:
    """Single-endpoint provider double"""

    def __init__(self, receipts=None, send_error=None):
        self.receipts = list(receipts or [])
        self.send_error = send_error
        self.calls = []

    def request(self, method, params=None):
        self.calls.append((method, params))
        if method == "eth_getTransactionCount":
            return "0x5"
        if method == "eth_sendRawTransaction":
            if self.send_error is not None:
                raise self.send_error
            return None
        if method == "eth_getTransactionReceipt":
            return self.receipts.pop(0) if self.receipts else None
        raise AssertionError(f"unexpected provider call {method}")


class FakeProxy:
    """Failover proxy double answering from a method -> result table"""

    def __init__(self, networks, responses=None, provider=None):
        self.networks = networks
        self.responses = {
            "eth_getBalance": hex(10 ** 18),
            "eth_getBlockByNumber": {"number": "0x10", "baseFeePerGas": hex(10 * 10 ** 9)},
            "eth_maxPriorityFeePerGas": hex(2 * 10 ** 9),
            "eth_gasPrice": hex(20 * 10 ** 9),
            "eth_estimateGas": hex(100000),
        }
        self.responses.update(responses or {})
        self.provider = provider or FakeProvider()
        self.calls = []

    def network(self, name):
        from workflow.errors import ValidationError

        if name not in self.networks:
            raise ValidationError(f"Unknown network '{name}'")
        return self.networks[name]

    def call(self, network, method, params=None):
        self.calls.append(method)
        value = self.responses[method]
        if isinstance(value, Exception):
            raise value
        return value

    def provider_for(self, network):
        return self.provider

    @property
    def methods(self):
        return list(self.calls)


@pytest.fixture
def fake_proxy(networks):
    def _make(responses=None, provider=None):
        return FakeProxy(networks, responses=responses, provider=provider)
    return _make


@pytest.fixture
def rpc_error():
    def _make(message="execution reverted", code=3):
        return RpcError(code, message)
    return _make
