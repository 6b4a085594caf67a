"""
Money helpers for the commission engine.

Every monetary value is a Decimal. Floats are converted through str() so
binary floating point error never reaches a calculation.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")

# Rounding policies
ROUND_PER_RULE = "per_rule"
ROUND_FINAL = "final"
ROUNDING_POLICIES = (ROUND_PER_RULE, ROUND_FINAL)


def to_decimal(value, default: Decimal | None = None) -> Decimal:
    """Convert an int/float/str/Decimal to Decimal.

    None (or an empty string) returns ``default`` when one is given.
    """
    if value is None or value == "":
        if default is not None:
            return default
        raise ValueError("Cannot convert empty value to Decimal")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Cannot convert boolean to Decimal: {value}")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Invalid numeric value: {value!r}")


def quantize_money(value: Decimal) -> Decimal:
    """Round to 2 decimal places using ROUND_HALF_UP."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(value: Decimal) -> str:
    """Fixed two-place string, e.g. Decimal('5000') -> '5000.00'."""
    return f"{quantize_money(value):.2f}"
