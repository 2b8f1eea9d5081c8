"""Tests for network configuration loading."""

import pytest

from stage_4.networks import PRIMARY_NETWORK, expand_endpoint, load_networks


def test_bundled_networks_include_primary_testnet():
    networks = load_networks()
    sepolia = networks[PRIMARY_NETWORK]
    assert sepolia.chain_id == 11155111
    assert sepolia.endpoints
    assert all("${" not in url for url in sepolia.endpoints)


def test_networks_are_read_only():
    networks = load_networks()
    with pytest.raises(TypeError):
        networks["other"] = networks[PRIMARY_NETWORK]


def test_explorer_links():
    sepolia = load_networks()[PRIMARY_NETWORK]
    assert sepolia.tx_url("0xabc") == "https://sepolia.etherscan.io/tx/0xabc"
    assert sepolia.address_url("0xdef") == "https://sepolia.etherscan.io/address/0xdef"


def test_endpoint_with_unset_variable_is_skipped(monkeypatch):
    monkeypatch.delenv("PIPELINE_TEST_RPC_KEY", raising=False)
    assert expand_endpoint("https://node.example/${PIPELINE_TEST_RPC_KEY}") is None
    monkeypatch.setenv("PIPELINE_TEST_RPC_KEY", "abc")
    assert expand_endpoint("https://node.example/${PIPELINE_TEST_RPC_KEY}") == "https://node.example/abc"


def test_missing_primary_network_is_rejected(tmp_path):
    path = tmp_path / "networks.yaml"
    path.write_text(
        "mainnet:\n"
        "  chain_id: 1\n"
        "  endpoints:\n"
        "    - https://cloudflare-eth.com\n"
    )
    with pytest.raises(ValueError):
        load_networks(str(path))


def test_endpoint_order_is_preserved(tmp_path):
    path = tmp_path / "networks.yaml"
    path.write_text(
        "sepolia:\n"
        "  chain_id: 11155111\n"
        "  explorer: https://sepolia.etherscan.io/\n"
        "  endpoints:\n"
        "    - https://b.example\n"
        "    - https://a.example\n"
    )
    sepolia = load_networks(str(path))["sepolia"]
    assert sepolia.endpoints == ("https://b.example", "https://a.example")
    assert sepolia.explorer == "https://sepolia.etherscan.io"
