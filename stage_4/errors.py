"""
User-facing error messages for deployment failures
"""

from workflow.errors import (
    ConfirmationTimeoutError,
    CredentialError,
    InsufficientFundsError,
    NetworkExhaustedError,
    PipelineError,
    RevertedError,
    RpcError,
    SubmissionError,
    ValidationError,
)

NONCE_CONFLICT = "Nonce conflict, retry shortly"
GAS_TOO_LOW = "Gas limit too low, increase the gas limit"
UNDERPRICED = "Gas price too low, increase the gas price"
REJECTED = "Transaction was rejected"
BROADCAST_UNREACHABLE = "Submission endpoint unreachable, check the transaction hash before retrying"

# Checked in order; the first rule whose marker appears in the message wins
MESSAGE_RULES = (
    (("insufficient funds",), InsufficientFundsError.category),
    (("invalid private key", "invalid sender", "private key"), CredentialError.category),
    (("nonce too low", "nonce too high", "already known", "nonce"), NONCE_CONFLICT),
    (("underpriced", "fee too low", "max fee per gas less than"), UNDERPRICED),
    (("intrinsic gas", "gas too low", "out of gas", "exceeds block gas limit"), GAS_TOO_LOW),
    (("revert",), RevertedError.category),
    (("network", "connection", "timed out", "timeout"), NetworkExhaustedError.category),
    (("rejected", "denied"), REJECTED),
)

# Typed errors whose category is already precise
TYPED_CATEGORIES = (
    CredentialError,
    InsufficientFundsError,
    RevertedError,
    ConfirmationTimeoutError,
    NetworkExhaustedError,
)


def truncate(message: str, limit: int = 100) -> str:
    return message if len(message) <= limit else message[:limit] + "..."


def friendly_error(exc: BaseException) -> str:
    """
    Map an exception to a stable, human-readable category.

    Typed errors map directly; node and submission errors are matched on
    their message text; anything unrecognized is truncated. A submission
    goes to a single endpoint, so its transport failures never report the
    whole network as unreachable.
    """
    if isinstance(exc, TYPED_CATEGORIES):
        return exc.category
    if isinstance(exc, ValidationError):
        return str(exc) or exc.category

    message = str(exc.rpc_message if isinstance(exc, RpcError) else exc)
    lowered = message.lower()
    for markers, category in MESSAGE_RULES:
        if any(marker in lowered for marker in markers):
            if category == NetworkExhaustedError.category and isinstance(exc, SubmissionError):
                return BROADCAST_UNREACHABLE
            return category

    if isinstance(exc, (SubmissionError, RpcError)):
        return f"{exc.category}: {truncate(message)}"
    if isinstance(exc, PipelineError) and not message:
        return exc.category
    return truncate(message) or "Unknown error"
