"""
Workflow: shared state, severity gate and error taxonomy
========================================================

Every stage reads and writes pipeline progress through WorkflowStateStore.
"""

from .errors import (
    ConfirmationTimeoutError,
    CredentialError,
    EstimationError,
    InsufficientFundsError,
    NetworkExhaustedError,
    PipelineError,
    RevertedError,
    RpcError,
    SubmissionError,
    UpstreamToolError,
    ValidationError,
)
from .gate import blocked_message, is_deployable, refresh_summary, summarize
from .models import (
    CompileArtifact,
    DeployResult,
    DetectionReport,
    Finding,
    Severity,
    SeveritySummary,
    WorkflowState,
    content_hash,
)
from .store import Subscription, WorkflowStateStore

__all__ = [
    "CompileArtifact",
    "ConfirmationTimeoutError",
    "CredentialError",
    "DeployResult",
    "DetectionReport",
    "EstimationError",
    "Finding",
    "InsufficientFundsError",
    "NetworkExhaustedError",
    "PipelineError",
    "RevertedError",
    "RpcError",
    "Severity",
    "SeveritySummary",
    "SubmissionError",
    "Subscription",
    "UpstreamToolError",
    "ValidationError",
    "WorkflowState",
    "WorkflowStateStore",
    "blocked_message",
    "content_hash",
    "is_deployable",
    "refresh_summary",
    "summarize",
]
