"""Tests for user-facing deployment error messages."""

import pytest

from stage_4.errors import BROADCAST_UNREACHABLE, GAS_TOO_LOW, NONCE_CONFLICT, REJECTED, friendly_error
from workflow.errors import (
    ConfirmationTimeoutError,
    CredentialError,
    InsufficientFundsError,
    NetworkExhaustedError,
    RevertedError,
    RpcError,
    SubmissionError,
    ValidationError,
)


@pytest.mark.parametrize("exc, expected", [
    (InsufficientFundsError("balance 0"), InsufficientFundsError.category),
    (CredentialError("bad"), CredentialError.category),
    (RevertedError("reverted", tx_hash="0x1"), RevertedError.category),
    (ConfirmationTimeoutError("late"), ConfirmationTimeoutError.category),
    (NetworkExhaustedError("sepolia", "eth_chainId", "refused"), NetworkExhaustedError.category),
])
def test_typed_errors_map_to_their_category(exc, expected):
    assert friendly_error(exc) == expected


@pytest.mark.parametrize("message, expected", [
    ("insufficient funds for gas * price + value", InsufficientFundsError.category),
    ("nonce too low", NONCE_CONFLICT),
    ("intrinsic gas too low", GAS_TOO_LOW),
    ("execution reverted: Ownable", RevertedError.category),
    ("transaction rejected by policy", REJECTED),
])
def test_node_messages_are_classified(message, expected):
    assert friendly_error(RpcError(-32000, message)) == expected
    assert friendly_error(SubmissionError(f"Broadcast failed: {message}")) == expected


def test_insufficient_funds_wins_over_gas():
    assert friendly_error(SubmissionError("insufficient funds for gas")) == InsufficientFundsError.category


def test_validation_errors_keep_their_message():
    assert friendly_error(ValidationError("Deployment blocked: 1 high-severity finding")) == (
        "Deployment blocked: 1 high-severity finding"
    )


def test_unknown_errors_are_truncated():
    message = friendly_error(RuntimeError("x" * 300))
    assert message == "x" * 100 + "..."


def test_unrecognized_submission_error_keeps_category():
    message = friendly_error(SubmissionError("something odd"))
    assert message.startswith(SubmissionError.category)


@pytest.mark.parametrize("message", [
    "Broadcast failed: ConnectionError: connection refused",
    "Broadcast failed: ReadTimeout: read timed out",
])
def test_single_endpoint_broadcast_failure_is_not_network_wide(message):
    assert friendly_error(SubmissionError(message)) == BROADCAST_UNREACHABLE
    assert friendly_error(RpcError(-32000, "connection refused")) == NetworkExhaustedError.category


def test_transaction_count_failure_is_not_a_nonce_conflict():
    error = SubmissionError("Could not read the pending transaction count: ConnectionError: refused")
    assert friendly_error(error) == BROADCAST_UNREACHABLE
