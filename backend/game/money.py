"""
Overflow-checked integer money math.

All amounts are minor units held in unsigned 128-bit range. Fractions
(holder weights, fees per token) use 18-decimal fixed point atomics so the
floor at every step matches what the ledger has always paid out.
"""
from .errors import MoneyOverflow

UINT128_MAX = 2**128 - 1
BPS_DENOMINATOR = 10_000
DECIMAL_PLACES = 18
DECIMAL_FRACTIONAL = 10**DECIMAL_PLACES


def _ensure_range(value: int, op: str) -> int:
    if value < 0 or value > UINT128_MAX:
        raise MoneyOverflow(op)
    return value


def checked_add(a: int, b: int) -> int:
    return _ensure_range(a + b, "add")


def checked_sub(a: int, b: int) -> int:
    return _ensure_range(a - b, "sub")


def checked_mul(a: int, b: int) -> int:
    return _ensure_range(a * b, "mul")


def apply_bps(amount: int, bps: int) -> int:
    """Take `bps` basis points of `amount`, truncated toward zero."""
    return checked_mul(amount, bps) // BPS_DENOMINATOR


def to_atomics(whole: int, tenths: int = 0) -> int:
    """Fixed point value `whole.tenths` as 18-decimal atomics."""
    return whole * DECIMAL_FRACTIONAL + tenths * DECIMAL_FRACTIONAL // 10


def ratio_atomics(numerator: int, denominator_atomics: int) -> int:
    """Fixed point `numerator / denominator`, floored to 18 decimals."""
    if denominator_atomics == 0:
        raise MoneyOverflow("div")
    return numerator * DECIMAL_FRACTIONAL * DECIMAL_FRACTIONAL // denominator_atomics


def mul_atomics(a: int, b: int) -> int:
    """Product of two fixed point values, floored to 18 decimals."""
    return a * b // DECIMAL_FRACTIONAL


def floor_atomics(value: int) -> int:
    """Integer part of a fixed point value."""
    return value // DECIMAL_FRACTIONAL


def format_atomics(value: int) -> str:
    """Render fixed point atomics the way decimals are printed (no trailing zeros)."""
    whole, frac = divmod(value, DECIMAL_FRACTIONAL)
    if frac == 0:
        return str(whole)
    return f"{whole}.{frac:018d}".rstrip("0")
