"""
Signing credential checks. The key itself never appears in messages.
"""

import re

from eth_account import Account
from eth_keys.exceptions import ValidationError as KeyValidationError

from workflow.errors import CredentialError, ValidationError

KEY_PATTERN = re.compile(r"^0x[0-9a-fA-F]{64}$")


def validate_key_format(signing_key: str) -> str:
    """
    Check presence and shape of the key without deriving anything.

    Returns:
        The key with surrounding whitespace removed

    Raises:
        ValidationError: No key supplied
        CredentialError: Wrong prefix or length, or non-hex characters
    """
    key = (signing_key or "").strip()
    if not key:
        raise ValidationError("A deployer private key is required")
    if not KEY_PATTERN.match(key):
        raise CredentialError("Private key must be 0x followed by 64 hexadecimal characters")
    return key


def derive_address(signing_key: str) -> str:
    """
    Derive the checksummed deployer address.

    Raises:
        CredentialError: If the key is outside the valid secp256k1 range
    """
    try:
        return Account.from_key(signing_key).address
    except (ValueError, KeyValidationError):
        raise CredentialError("Private key is not a valid secp256k1 key") from None
