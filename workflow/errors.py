"""
Pipeline Errors
===============

Exception taxonomy shared by every stage. Deployment failures are converted
into a stable, user-facing category by stage_4.errors.friendly_error.
"""

from typing import Optional


class PipelineError(Exception):
    """Base class for all pipeline errors"""

    category = "Pipeline operation failed"


class ValidationError(PipelineError):
    """A precondition was not met; no I/O was performed"""

    category = "Deployment preconditions not met"


class CredentialError(ValidationError):
    """Malformed or rejected signing key"""

    category = "Invalid private key"


class InsufficientFundsError(PipelineError):
    """Deployer balance is zero or below the required minimum"""

    category = "Insufficient balance, fund the account with test tokens"

    def __init__(self, message: str, balance: Optional[int] = None, required: Optional[int] = None):
        super().__init__(message)
        self.balance = balance
        self.required = required


class EstimationError(PipelineError):
    """Gas estimation failed (recoverable, falls back to the default gas limit)"""

    category = "Gas estimation failed"


class SubmissionError(PipelineError):
    """The signed deployment transaction could not be broadcast"""

    category = "Deployment transaction could not be submitted"

    def __init__(self, message: str, tx_hash: Optional[str] = None):
        super().__init__(message)
        self.tx_hash = tx_hash


class RevertedError(PipelineError):
    """The transaction was mined but contract creation reverted"""

    category = "Contract deployment was reverted"

    def __init__(self, message: str, tx_hash: Optional[str] = None, receipt: Optional[dict] = None):
        super().__init__(message)
        self.tx_hash = tx_hash
        self.receipt = receipt or {}


class ConfirmationTimeoutError(PipelineError):
    """No receipt was observed before the confirmation deadline"""

    category = "Timed out waiting for deployment confirmation"

    def __init__(self, message: str, tx_hash: Optional[str] = None):
        super().__init__(message)
        self.tx_hash = tx_hash


class NetworkExhaustedError(PipelineError):
    """Every RPC endpoint configured for a network failed"""

    category = "Network connection failed, all RPC nodes are unreachable"

    def __init__(self, network: str, method: str, last_error: Optional[str] = None):
        self.network = network
        self.method = method
        self.last_error = last_error or "unknown error"
        super().__init__(
            f"All RPC endpoints for network '{network}' failed for {method}. "
            f"Last error: {self.last_error}"
        )


class RpcError(PipelineError):
    """A node answered with a JSON-RPC error object"""

    category = "The node rejected the request"

    def __init__(self, code: int, message: str, data=None):
        super().__init__(f"RPC error {code}: {message}")
        self.code = code
        self.rpc_message = message
        self.data = data


class UpstreamToolError(PipelineError):
    """Compiler, analysis tool or language model failure (not a pipeline bug)"""

    category = "External tool failed"

    def __init__(self, tool: str, message: str):
        super().__init__(f"{tool}: {message}")
        self.tool = tool
