"""
Lenient numeric coercion for spreadsheet cells.

Malformed values never raise: they become None (or the caller's default) so a
stray "N/A" in a price column does not reject the whole row.
"""
import math
from decimal import Decimal, InvalidOperation
from typing import Any, Optional


def _normalize_numeric_text(value: str) -> Optional[str]:
    token = value.strip()
    if not token:
        return None
    token = token.replace(",", "")
    for symbol in ("$", "₹", "%"):
        token = token.replace(symbol, "")
    token = token.strip()
    if token.startswith("(") and token.endswith(")"):
        token = f"-{token[1:-1]}"
    return token or None


def coerce_decimal(value: Any) -> Optional[Decimal]:
    """Best-effort conversion to Decimal; None when the value is not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return None
        return Decimal(str(value))

    token = _normalize_numeric_text(str(value))
    if token is None:
        return None
    try:
        result = Decimal(token)
    except InvalidOperation:
        return None
    if not result.is_finite():
        return None
    return result


INT_MIN = -(2 ** 31)
INT_MAX = 2 ** 31 - 1


def coerce_int(
    value: Any,
    default: Optional[int] = None,
    *,
    min_value: int = INT_MIN,
    max_value: int = INT_MAX,
) -> Optional[int]:
    """
    Convert to int, truncating fractional input ("507.0" -> 507).

    Returns ``default`` when the value is empty, not numeric, or outside
    ``min_value``..``max_value`` (the range of an INTEGER column).
    """
    as_decimal = coerce_decimal(value)
    if as_decimal is None:
        return default
    # Compare before truncating so "1e999999" never becomes a huge int
    if not (min_value - 1 < as_decimal < max_value + 1):
        return default
    return int(as_decimal)


def coerce_float(value: Any, default: Optional[float] = None) -> Optional[float]:
    as_decimal = coerce_decimal(value)
    if as_decimal is None:
        return default
    result = float(as_decimal)
    # Decimal accepts exponents a double cannot hold
    if not math.isfinite(result):
        return default
    return result
