from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from desk.logging import get_logger
from modules.exchange_reconciliation.core.denominations import count_total
from modules.exchange_reconciliation.core.models import Direction, Settlement, TenderSplit

log = get_logger(__name__)


@dataclass(frozen=True)
class Allocation:
    effective_cash: int
    total_tendered: int
    transaction_fee: int
    remaining: int
    settlement: str
    direction: str

    @property
    def due(self) -> int:
        """Still owed: by the customer on payments, to the customer on refunds."""
        return self.remaining if self.remaining > 0 else 0

    @property
    def excess(self) -> int:
        """Tendered beyond what was needed (change to hand back on payments)."""
        return -self.remaining if self.remaining < 0 else 0

    @property
    def is_partial(self) -> bool:
        return self.settlement in Settlement.PARTIAL


@dataclass(frozen=True)
class ChangeCheck:
    expected: int
    entered: int

    @property
    def shortfall(self) -> int:
        return self.expected - self.entered

    @property
    def matches(self) -> bool:
        return self.expected == self.entered


def effective_cash(tender: TenderSplit) -> int:
    notes_total = count_total(tender.cash_notes)
    return notes_total if notes_total > 0 else tender.cash


def total_tendered(tender: TenderSplit) -> int:
    return effective_cash(tender) + tender.card + tender.wallet_1 + tender.wallet_2


def allocate(tender: TenderSplit, difference: int) -> Allocation:
    """Settle ``difference`` against the tender.

    The transaction fee is charged only when the customer is paying; a
    refund is never reduced by it.
    """
    cash = effective_cash(tender)
    tendered = cash + tender.card + tender.wallet_1 + tender.wallet_2

    if difference > 0:
        fee = tender.transaction_fee
        remaining = difference - tendered + fee
        settlement = Settlement.FULLY_PAID if remaining <= 0 else Settlement.PARTIALLY_PAID
        direction = Direction.PAYMENT
    elif difference < 0:
        fee = 0
        remaining = -difference - tendered
        settlement = Settlement.FULLY_REFUNDED if remaining <= 0 else Settlement.PARTIALLY_REFUNDED
        direction = Direction.REFUND
    else:
        fee = 0
        # nothing is owed either way; anything tendered goes straight back
        remaining = -tendered
        settlement = Settlement.EVEN_EXCHANGE
        direction = Direction.NONE

    return Allocation(
        effective_cash=cash,
        total_tendered=tendered,
        transaction_fee=fee,
        remaining=remaining,
        settlement=settlement,
        direction=direction,
    )


def verify_change(expected_change: int, change_notes: Mapping[int, int]) -> ChangeCheck:
    """Compare the notes handed back against the change the customer is due.

    A mismatch is reported, not raised; the operator decides what to do.
    """
    check = ChangeCheck(expected=max(expected_change, 0), entered=count_total(change_notes))
    if not check.matches:
        log.warning(
            "change_mismatch",
            expected=check.expected,
            entered=check.entered,
            shortfall=check.shortfall,
        )
    return check


__all__ = [
    "Allocation",
    "ChangeCheck",
    "effective_cash",
    "total_tendered",
    "allocate",
    "verify_change",
]
