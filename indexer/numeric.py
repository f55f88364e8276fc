"""Fixed-point scaling between exact token integers and human decimals."""

from __future__ import annotations

from decimal import Context, Decimal, ROUND_HALF_EVEN, localcontext

NUMERIC_18 = Decimal("0.000000000000000001")
DEFAULT_DECIMALS = 18
MAX_DECIMALS = 255

# Wide enough for any uint256 at any supported scale without rounding.
EXACT_CONTEXT = Context(prec=400, rounding=ROUND_HALF_EVEN)


def _check_decimals(decimals: int) -> None:
    if isinstance(decimals, bool) or not isinstance(decimals, int):
        raise ValueError(f"decimals must be an integer, got {decimals!r}")
    if decimals < 0 or decimals > MAX_DECIMALS:
        raise ValueError(f"decimals out of range: {decimals}")


def to_decimals(exact: int, decimals: int) -> Decimal:
    """Scale an exact integer amount down by ``10**decimals``."""
    _check_decimals(decimals)
    return Decimal(exact).scaleb(-decimals, context=EXACT_CONTEXT)


def from_decimals(value: Decimal, decimals: int) -> int:
    """Inverse of ``to_decimals``; rejects values finer than one exact unit."""
    _check_decimals(decimals)
    scaled = value.scaleb(decimals, context=EXACT_CONTEXT)
    integral = scaled.to_integral_value(context=EXACT_CONTEXT)
    if integral != scaled:
        raise ValueError(f"{value} has more than {decimals} fractional digits")
    return int(integral)


def normalize_decimal(value: Decimal, scale: Decimal = NUMERIC_18) -> Decimal:
    """Quantize decimals to deterministic precision."""
    with localcontext(EXACT_CONTEXT):
        return value.quantize(scale, rounding=ROUND_HALF_EVEN)


def percentage(numerator: int, denominator: int) -> Decimal:
    """Return ``numerator / denominator * 100`` quantized to 18 places."""
    with localcontext(EXACT_CONTEXT):
        ratio = Decimal(numerator) / Decimal(denominator) * Decimal(100)
    return normalize_decimal(ratio)


def decimal_add(left: Decimal, right: Decimal) -> Decimal:
    """Add two scaled decimals without context rounding."""
    with localcontext(EXACT_CONTEXT):
        return left + right
