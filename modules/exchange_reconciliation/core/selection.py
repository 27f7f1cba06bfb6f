from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Tuple

from desk.logging import get_logger
from modules.exchange_reconciliation.core.models import OriginalLineItem

log = get_logger(__name__)


@dataclass(frozen=True)
class SelectedRemoval:
    line_item_id: str
    quantity: int
    barcodes: Tuple[str, ...] = ()


class LineItemSelector:
    """Which lines of the original order go back, and how many units of each.

    Invalid input never raises: the form keeps its last valid value, and the
    validator decides later whether the selection is complete.
    """

    def __init__(self, items: Iterable[OriginalLineItem]) -> None:
        self._items: Dict[str, OriginalLineItem] = {item.item_id: item for item in items}
        self._selected: List[str] = []
        self._quantities: Dict[str, int] = {}
        self._barcodes: Dict[str, Tuple[str, ...]] = {}

    # ---- lookups ----
    def item(self, item_id: str) -> OriginalLineItem | None:
        return self._items.get(item_id)

    def items(self) -> List[OriginalLineItem]:
        return list(self._items.values())

    def is_selected(self, item_id: str) -> bool:
        return item_id in self._selected

    def quantity(self, item_id: str) -> int | None:
        return self._quantities.get(item_id)

    def selected_ids(self) -> List[str]:
        return list(self._selected)

    # ---- mutate ----
    def select(self, item_id: str) -> bool:
        if item_id not in self._items:
            log.debug("select_unknown_line", item_id=item_id)
            return False
        if item_id not in self._selected:
            self._selected.append(item_id)
        return True

    def deselect(self, item_id: str) -> None:
        if item_id in self._selected:
            self._selected.remove(item_id)
        self._quantities.pop(item_id, None)
        self._barcodes.pop(item_id, None)

    def toggle(self, item_id: str) -> bool:
        if self.is_selected(item_id):
            self.deselect(item_id)
            return False
        return self.select(item_id)

    def set_quantity(self, item_id: str, qty: int) -> bool:
        """Record an exchange quantity; out-of-range values are ignored."""
        item = self._items.get(item_id)
        if item is None or item_id not in self._selected:
            return False
        if isinstance(qty, bool) or not isinstance(qty, int):
            return False
        if qty < 1 or qty > item.available_quantity:
            log.debug(
                "quantity_rejected",
                item_id=item_id,
                qty=qty,
                available=item.available_quantity,
            )
            return False
        self._quantities[item_id] = qty
        picked = self._barcodes.get(item_id)
        if picked and len(picked) != qty:
            self._barcodes.pop(item_id, None)
        return True

    def set_barcodes(self, item_id: str, barcodes: Sequence[str]) -> bool:
        """Name the physical units going back; one barcode per unit."""
        item = self._items.get(item_id)
        qty = self._quantities.get(item_id)
        if item is None or qty is None:
            return False
        picked = tuple(barcodes)
        if len(set(picked)) != len(picked) or len(picked) != qty:
            return False
        if not set(picked) <= set(item.barcodes):
            return False
        self._barcodes[item_id] = picked
        return True

    # ---- read ----
    def incomplete(self) -> List[str]:
        return [item_id for item_id in self._selected if item_id not in self._quantities]

    def removals(self) -> List[SelectedRemoval]:
        return [
            SelectedRemoval(
                line_item_id=item_id,
                quantity=self._quantities[item_id],
                barcodes=self._barcodes.get(item_id, ()),
            )
            for item_id in self._selected
            if item_id in self._quantities
        ]

    def total(self) -> int:
        return sum(
            self._items[item_id].unit_price * qty
            for item_id, qty in self._quantities.items()
        )


__all__ = ["SelectedRemoval", "LineItemSelector"]
