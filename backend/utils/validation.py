"""
Input validation utilities for the HTTP surface.
"""
import re
from typing import Tuple

# bech32: human readable prefix, separator "1", lowercase data part
_ADDRESS_PATTERN = re.compile(r'^[a-z]{1,20}1[02-9ac-hj-np-z]{38,90}$')
_DENOM_PATTERN = re.compile(r'^[a-zA-Z][a-zA-Z0-9/:._-]{2,127}$')


def is_valid_address(address: str) -> Tuple[bool, str]:
    """Validate a bech32 account or contract address.

    Args:
        address: Address to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not address:
        return False, "Address is required"

    if not isinstance(address, str):
        return False, "Address must be a string"

    if not _ADDRESS_PATTERN.match(address):
        return False, "Invalid address format"

    return True, ""


def is_valid_denom(denom: str) -> Tuple[bool, str]:
    """Validate a coin denomination.

    Args:
        denom: Denomination, e.g. "ustars" or "ibc/ABC..."

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not denom:
        return False, "Denom is required"

    if not _DENOM_PATTERN.match(denom):
        return False, "Invalid denom format"

    return True, ""


def is_valid_amount(amount: int) -> Tuple[bool, str]:
    """Validate an amount in minor units."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        return False, "Amount must be an integer number of minor units"

    if amount <= 0:
        return False, "Amount must be greater than 0"

    if amount >= 2**128:
        return False, "Amount is too large"

    return True, ""


def is_valid_token_id(token_id: str) -> Tuple[bool, str]:
    """Validate an NFT token id."""
    if not token_id:
        return False, "Token id is required"

    if len(token_id) > 128 or not token_id.isprintable():
        return False, "Invalid token id"

    return True, ""
