"""
Stage 4: Deployment
===================

Multi-endpoint RPC failover and the deployment state machine.
"""

from .deployer import DeploymentOrchestrator, apply_safety_margin
from .errors import friendly_error
from .models import DeployConfig, DeployStage, GasPlan
from .networks import NetworkConfig, load_networks
from .rpc_proxy import RpcFailoverProxy, RpcProvider

__all__ = [
    "DeployConfig",
    "DeployStage",
    "DeploymentOrchestrator",
    "GasPlan",
    "NetworkConfig",
    "RpcFailoverProxy",
    "RpcProvider",
    "apply_safety_margin",
    "friendly_error",
    "load_networks",
]
