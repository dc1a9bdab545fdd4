"""Utility modules for Coinflip."""
from .formatting import (
    format_units,
    format_bps,
    format_timestamp,
    truncate_address,
    format_win_rate
)
from .validation import (
    is_valid_address,
    is_valid_denom,
    is_valid_amount,
    is_valid_token_id,
)

__all__ = [
    "format_units",
    "format_bps",
    "format_timestamp",
    "truncate_address",
    "format_win_rate",
    "is_valid_address",
    "is_valid_denom",
    "is_valid_amount",
    "is_valid_token_id",
]
