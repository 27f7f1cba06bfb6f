from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from modules.exchange_reconciliation.core.errors import InvalidAmount
from modules.exchange_reconciliation.core.models import Direction
from modules.exchange_reconciliation.core.money import parse_decimal, percent_of


@dataclass(frozen=True)
class PriceBreakdown:
    original_amount: int
    new_subtotal: int
    vat_rate: Decimal
    vat_amount: int
    total_new_amount: int
    difference: int

    @property
    def direction(self) -> str:
        if self.difference > 0:
            return Direction.PAYMENT
        if self.difference < 0:
            return Direction.REFUND
        return Direction.NONE


def reconcile(original_amount: int, new_subtotal: int, vat_rate_percent: Any) -> PriceBreakdown:
    """Price the swap: VAT on the new goods, then the signed difference.

    VAT is taken once on the basket subtotal, never per line, so repeated
    edits cannot accumulate rounding error. A positive difference is owed
    by the customer; a negative one is owed to them.
    """
    rate, error = parse_decimal(vat_rate_percent, label="VAT rate")
    if error or rate is None:
        raise InvalidAmount(error or "VAT rate must be a number.")
    if rate < 0:
        raise InvalidAmount("VAT rate cannot be negative.")
    if original_amount < 0 or new_subtotal < 0:
        raise InvalidAmount("Amounts cannot be negative.")

    vat_amount = percent_of(new_subtotal, rate)
    total_new_amount = new_subtotal + vat_amount
    return PriceBreakdown(
        original_amount=original_amount,
        new_subtotal=new_subtotal,
        vat_rate=rate,
        vat_amount=vat_amount,
        total_new_amount=total_new_amount,
        difference=total_new_amount - original_amount,
    )


__all__ = ["PriceBreakdown", "reconcile"]
