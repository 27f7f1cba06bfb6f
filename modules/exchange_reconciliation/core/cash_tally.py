from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Mapping

from modules.exchange_reconciliation.core.denominations import count_total


def _merge(base: Mapping[int, int], extra: Mapping[int, int]) -> Dict[int, int]:
    merged = dict(base)
    for face, count in extra.items():
        if count:
            merged[face] = merged.get(face, 0) + count
    return merged


@dataclass(frozen=True)
class DrawerReconciliation:
    expected: int
    counted: int

    @property
    def over_short(self) -> int:
        """Positive when the drawer holds more than expected."""
        return self.counted - self.expected


@dataclass(frozen=True)
class CashDrawerTally:
    """Running note count for one business day at one till."""

    business_day: date
    opening_float: int = 0
    received_notes: Dict[int, int] = field(default_factory=dict)
    returned_notes: Dict[int, int] = field(default_factory=dict)
    transaction_count: int = 0

    @property
    def total_received(self) -> int:
        return count_total(self.received_notes)

    @property
    def total_returned(self) -> int:
        return count_total(self.returned_notes)

    @property
    def net_cash(self) -> int:
        return self.total_received - self.total_returned

    def record(
        self,
        received: Mapping[int, int],
        returned: Mapping[int, int] | None = None,
    ) -> "CashDrawerTally":
        """Add one cash transaction; returns a new tally."""
        for notes in (received, returned or {}):
            if any(count < 0 for count in notes.values()):
                raise ValueError("note counts cannot be negative")
        return CashDrawerTally(
            business_day=self.business_day,
            opening_float=self.opening_float,
            received_notes=_merge(self.received_notes, received),
            returned_notes=_merge(self.returned_notes, returned or {}),
            transaction_count=self.transaction_count + 1,
        )

    def notes_on_hand(self) -> Dict[int, int]:
        """Per-face count the drawer should physically hold, float excluded."""
        on_hand: Dict[int, int] = {}
        for face in sorted(set(self.received_notes) | set(self.returned_notes), reverse=True):
            count = self.received_notes.get(face, 0) - self.returned_notes.get(face, 0)
            if count:
                on_hand[face] = count
        return on_hand

    def reconcile(self, counted_cash: int) -> DrawerReconciliation:
        return DrawerReconciliation(
            expected=self.opening_float + self.net_cash,
            counted=counted_cash,
        )


__all__ = ["CashDrawerTally", "DrawerReconciliation"]
