"""
Network Configuration
=====================

Static mapping from network name to an ordered list of RPC endpoints,
loaded once from YAML. The primary test network must always be present.
"""

import os
import re
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

import yaml

import config

PRIMARY_NETWORK = "sepolia"
DEFAULT_NETWORKS_FILE = Path(__file__).parent / "networks.yaml"

_UNRESOLVED_VAR = re.compile(r"\$\{?\w+\}?")


@dataclass(frozen=True)
class NetworkConfig:
    key: str
    name: str
    chain_id: int
    currency: str
    explorer: str
    endpoints: Tuple[str, ...]

    def address_url(self, address: str) -> str:
        return f"{self.explorer}/address/{address}"

    def tx_url(self, tx_hash: str) -> str:
        return f"{self.explorer}/tx/{tx_hash}"


def expand_endpoint(url: str) -> Optional[str]:
    """Expand ${VAR} from the environment; None if a variable is unset"""
    expanded = os.path.expandvars(url)
    if _UNRESOLVED_VAR.search(expanded):
        return None
    return expanded


def load_networks(path: Optional[str] = None) -> Mapping[str, NetworkConfig]:
    """
    Load network definitions.

    Args:
        path: YAML file (default: PIPELINE_NETWORKS_FILE or stage_4/networks.yaml)

    Returns:
        Read-only mapping of network key -> NetworkConfig

    Raises:
        ValueError: If the primary network is missing or a network has no endpoints
    """
    path = Path(path or config.NETWORKS_FILE or DEFAULT_NETWORKS_FILE)
    with open(path, "r", encoding="utf8") as f:
        raw = yaml.safe_load(f) or {}

    networks = {}
    for key, entry in raw.items():
        endpoints = tuple(
            url for url in (expand_endpoint(u) for u in entry.get("endpoints") or []) if url
        )
        if not endpoints:
            raise ValueError(f"Network '{key}' has no usable RPC endpoints in {path}")
        networks[key] = NetworkConfig(
            key=key,
            name=entry.get("name", key),
            chain_id=int(entry["chain_id"]),
            currency=entry.get("currency", "ETH"),
            explorer=entry.get("explorer", "").rstrip("/"),
            endpoints=endpoints,
        )

    if PRIMARY_NETWORK not in networks:
        raise ValueError(f"Primary test network '{PRIMARY_NETWORK}' must be configured in {path}")

    return MappingProxyType(networks)
