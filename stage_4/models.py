"""
Deployment Models
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional

import config


class DeployStage(Enum):
    """Deployment state machine; FAILED is reachable from every stage"""
    VALIDATING = "validating"
    CONNECTING = "connecting"
    ESTIMATING = "estimating"
    DEPLOYING = "deploying"
    CONFIRMING = "confirming"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (DeployStage.SUCCEEDED, DeployStage.FAILED)


@dataclass
class DeployConfig:
    """
    Per-attempt deployment input.

    The signing key is excluded from repr and is cleared by the
    orchestrator once the attempt ends, whatever the outcome.
    """
    network: str = config.DEFAULT_NETWORK
    signing_key: str = field(default="", repr=False)
    gas_limit: Optional[int] = None
    gas_price_hint: Optional[Decimal] = None  # gwei

    def clear_secret(self) -> None:
        self.signing_key = ""

    def to_dict(self) -> Dict:
        return {
            "network": self.network,
            "gasLimit": self.gas_limit,
            "gasPriceGwei": str(self.gas_price_hint) if self.gas_price_hint is not None else None,
        }


@dataclass(frozen=True)
class GasPlan:
    """Gas limit and fee fields for the deployment transaction"""
    gas_limit: int
    fees: Dict[str, int]
    estimated_gas: Optional[int] = None

    @property
    def used_fallback(self) -> bool:
        return self.estimated_gas is None

    def max_cost(self) -> int:
        price = self.fees.get("maxFeePerGas", self.fees.get("gasPrice", 0))
        return self.gas_limit * price
