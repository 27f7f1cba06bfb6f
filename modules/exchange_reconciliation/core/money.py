"""Minor-unit money helpers.

The engine never holds money as float. Amounts cross the boundary as
decimal strings and live inside the engine as ``int`` minor units
(paisa, cents). Rounding is ROUND_HALF_UP and happens only where a rate
is applied.
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Tuple

RATE_QUANT = Decimal("0.01")


def parse_decimal(value: Any, *, label: str = "Amount") -> Tuple[Decimal | None, str | None]:
    if value is None:
        return None, f"{label} is required."
    if isinstance(value, bool):
        return None, f"{label} must be a number."
    if isinstance(value, Decimal):
        return value, None
    if isinstance(value, int):
        return Decimal(value), None
    if isinstance(value, float):
        # str() keeps the short repr, so 12.1 stays 12.1 rather than its binary expansion
        value = str(value)

    raw = str(value).strip()
    if not raw:
        return None, f"{label} is required."

    compact = raw.replace(" ", "")
    if "," in compact and "." in compact:
        last_comma = compact.rfind(",")
        last_dot = compact.rfind(".")
        if last_comma > last_dot:
            compact = compact.replace(".", "")
            compact = compact.replace(",", ".")
        else:
            compact = compact.replace(",", "")
    elif "," in compact:
        compact = compact.replace(",", ".")

    try:
        parsed = Decimal(compact)
    except (InvalidOperation, ValueError):
        return None, f"{label} must be a number."
    if not parsed.is_finite():
        return None, f"{label} must be a number."
    return parsed, None


def to_minor_units(value: Any, decimals: int, *, label: str = "Amount") -> Tuple[int | None, str | None]:
    """Convert a major-unit value ("12.50") into minor units (1250).

    Values carrying more precision than the currency allows are rejected
    instead of rounded, so no fraction of a minor unit is ever dropped.
    """
    amount, error = parse_decimal(value, label=label)
    if error or amount is None:
        return None, error
    scale = Decimal(10) ** decimals
    scaled = amount * scale
    rounded = scaled.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    if rounded != scaled:
        return None, f"{label} has more than {decimals} decimal places."
    return int(rounded), None


def from_minor_units(units: int, decimals: int) -> str:
    scale = Decimal(10) ** decimals
    quant = Decimal("1") if decimals == 0 else Decimal("1." + "0" * decimals)
    return str((Decimal(units) / scale).quantize(quant, rounding=ROUND_HALF_UP))


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def percent_of(amount: int, rate_percent: Decimal) -> int:
    """``amount * rate / 100`` rounded once to a whole minor unit."""
    return round_half_up(Decimal(amount) * Decimal(rate_percent) / Decimal(100))


def quantize_rate(rate: Decimal) -> Decimal:
    return Decimal(rate).quantize(RATE_QUANT, rounding=ROUND_HALF_UP)


__all__ = [
    "parse_decimal",
    "to_minor_units",
    "from_minor_units",
    "round_half_up",
    "percent_of",
    "quantize_rate",
]
