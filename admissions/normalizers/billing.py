"""
Monetary field normalization.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

DEFAULT_PLACES = 2


def parse_amount(value) -> Decimal:
    """
    Parse a billing amount into a Decimal.

    Floats go through ``str`` so the Decimal holds the value as written,
    not its binary expansion.

    Raises:
        ValueError: if the value is empty or not numeric
    """
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        amount = Decimal(str(value))
    elif isinstance(value, str) and value.strip():
        try:
            amount = Decimal(value.strip())
        except InvalidOperation:
            raise ValueError(f"non-numeric billing amount: {value!r}") from None
    else:
        raise ValueError(f"non-numeric billing amount: {value!r}")

    if not amount.is_finite():
        raise ValueError(f"non-numeric billing amount: {value!r}")
    return amount


def round_billing(amount, places: int = DEFAULT_PLACES) -> Decimal:
    """Round half away from zero to ``places`` fractional digits (18856.28131 -> 18856.28)."""
    exponent = Decimal(1).scaleb(-places)
    return parse_amount(amount).quantize(exponent, rounding=ROUND_HALF_UP)
