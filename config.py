# config.py
import os
from decimal import Decimal
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

# Language model (OpenAI-compatible chat completions)
LLM_API_KEY = os.getenv("DEEPSEEK_API_KEY") or os.getenv("OPENAI_API_KEY") or os.getenv("API_KEY")
LLM_BASE_URL = os.getenv("LLM_BASE_URL", "https://api.deepseek.com/v1")
LLM_MODEL = os.getenv("LLM_MODEL", "deepseek-chat")
LLM_TIMEOUT = int(os.getenv("LLM_TIMEOUT", "120"))

# Compiler
SOLC_VERSION = "0.8.20"
SOLC_OPTIMIZER_RUNS = 200

# Static analysis
SLITHER_MODE = os.getenv("SLITHER_MODE", "local")  # "local" or "docker"
SLITHER_TIMEOUT = int(os.getenv("SLITHER_TIMEOUT", "120"))

# Deployment
DEFAULT_NETWORK = os.getenv("PIPELINE_NETWORK", "sepolia")
NETWORKS_FILE = os.getenv("PIPELINE_NETWORKS_FILE")  # None = stage_4/networks.yaml
RPC_TIMEOUT = float(os.getenv("RPC_TIMEOUT", "15"))
DEFAULT_GAS_LIMIT = 3_000_000
GAS_SAFETY_MARGIN = Decimal("1.5")
MIN_BALANCE_WEI = 10 ** 15  # 0.001 ETH
CONFIRMATION_TIMEOUT = float(os.getenv("CONFIRMATION_TIMEOUT", "180"))
RECEIPT_POLL_INTERVAL = float(os.getenv("RECEIPT_POLL_INTERVAL", "2"))
SIGNING_KEY_ENV = "DEPLOYER_PRIVATE_KEY"

# Outputs
OUTPUT_DIR = os.getenv("PIPELINE_OUTPUT_DIR", "pipeline_outputs")


def get_secret(name: str = SIGNING_KEY_ENV) -> Optional[str]:
    """Read a secret from the environment (.env included); never cached here"""
    value = os.getenv(name)
    return value.strip() if value else None
