"""Tests for signing key checks."""

import pytest

from conftest import TEST_ADDRESS, TEST_KEY
from stage_4.credentials import derive_address, validate_key_format
from workflow.errors import CredentialError, ValidationError


def test_valid_key_is_accepted_and_stripped():
    assert validate_key_format(f"  {TEST_KEY}\n") == TEST_KEY


def test_missing_key():
    with pytest.raises(ValidationError):
        validate_key_format("")
    with pytest.raises(ValidationError):
        validate_key_format(None)


@pytest.mark.parametrize("key", [TEST_KEY[2:], TEST_KEY[:-2], TEST_KEY + "00", "0x" + "g" * 64])
def test_malformed_keys(key):
    with pytest.raises(CredentialError) as exc_info:
        validate_key_format(key)
    assert key not in str(exc_info.value)


def test_derive_address():
    assert derive_address(TEST_KEY) == TEST_ADDRESS
