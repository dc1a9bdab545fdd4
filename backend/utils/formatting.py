"""
Formatting utilities for display.
"""
from datetime import datetime, timezone
from typing import Optional

DEFAULT_DECIMALS = 6  # ustars and most native denoms


def format_units(amount: int, denom: str = "", decimals: int = DEFAULT_DECIMALS) -> str:
    """Format minor units as whole tokens (5000000ustars -> 5.000000 STARS)."""
    whole, frac = divmod(amount, 10 ** decimals)
    display_denom = denom[1:].upper() if denom.startswith("u") else denom.upper()
    text = f"{whole:,}.{frac:0{decimals}d}" if decimals else f"{whole:,}"
    return f"{text} {display_denom}".rstrip()


def format_bps(bps: int) -> str:
    """Format basis points as a percentage."""
    return f"{bps / 100:.2f}%"


def format_timestamp(time_nanos: Optional[int]) -> str:
    """Format a block time for display."""
    if not time_nanos:
        return "N/A"
    dt = datetime.fromtimestamp(time_nanos / 1_000_000_000, tz=timezone.utc)
    return dt.strftime("%Y-%m-%d %H:%M:%S UTC")


def truncate_address(address: str, start: int = 8, end: int = 4) -> str:
    """Truncate wallet address for display."""
    if len(address) <= start + end:
        return address
    return f"{address[:start]}...{address[-end:]}"


def format_win_rate(flips: int, wins: int) -> str:
    """Format win rate percentage."""
    if flips == 0:
        return "0.0%"
    win_rate = (wins / flips) * 100
    return f"{win_rate:.1f}%"
