from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from desk.logging import get_logger
from modules.exchange_reconciliation.core.errors import InvalidAmount, InvalidQuantity, StockExceeded
from modules.exchange_reconciliation.core.models import BarcodeMatch, ReplacementItem

log = get_logger(__name__)


def line_key(product_id: str, batch_id: str) -> str:
    return f"{product_id}:{batch_id}"


@dataclass
class ReplacementLine:
    line_id: str
    product_id: str
    batch_id: str
    unit_price: int
    quantity: int
    ceiling: int
    discount: int = 0
    name: Optional[str] = None

    @property
    def amount(self) -> int:
        return self.unit_price * self.quantity - self.discount

    def as_item(self) -> ReplacementItem:
        return ReplacementItem(
            product_id=self.product_id,
            batch_id=self.batch_id,
            quantity=self.quantity,
            unit_price=self.unit_price,
            discount=self.discount,
        )


class ReplacementBasket:
    """Replacement goods for one exchange, one line per (product, batch)."""

    def __init__(self) -> None:
        self._lines: Dict[str, ReplacementLine] = {}

    def __len__(self) -> int:
        return len(self._lines)

    def __contains__(self, line_id: object) -> bool:
        return line_id in self._lines

    def get(self, line_id: str) -> ReplacementLine | None:
        return self._lines.get(line_id)

    def lines(self) -> List[ReplacementLine]:
        return list(self._lines.values())

    def add(
        self,
        product_id: str,
        batch_id: str,
        unit_price: int,
        requested_qty: int,
        ceiling: int,
        *,
        discount: int = 0,
        name: str | None = None,
    ) -> ReplacementLine:
        if requested_qty <= 0:
            raise InvalidQuantity("Quantity must be at least 1.")
        if unit_price < 0:
            raise InvalidAmount("Unit price cannot be negative.")
        if discount < 0 or discount > unit_price * requested_qty:
            raise InvalidAmount("Discount must be between zero and the line amount.")

        product_id, batch_id = str(product_id), str(batch_id)
        key = line_key(product_id, batch_id)
        existing = self._lines.get(key)
        in_basket = existing.quantity if existing else 0

        if existing is not None:
            if existing.unit_price != unit_price:
                raise InvalidAmount(
                    f"Line {key} is already priced at {existing.unit_price}; "
                    "remove it before adding at another price."
                )
            if existing.discount + discount > unit_price * (in_basket + requested_qty):
                raise InvalidAmount("Discount must be between zero and the line amount.")

        if in_basket + requested_qty > ceiling:
            log.info(
                "stock_exceeded",
                product_id=product_id,
                batch_id=batch_id,
                available=ceiling,
                in_basket=in_basket,
                requested=requested_qty,
            )
            raise StockExceeded(
                available=ceiling,
                already_in_basket=in_basket,
                wanted=in_basket + requested_qty,
            )

        if existing is not None:
            existing.quantity += requested_qty
            existing.discount += discount
            # stock may have been re-read since the first add
            existing.ceiling = ceiling
            log.info("basket_line_merged", line_id=key, quantity=existing.quantity)
            return existing

        line = ReplacementLine(
            line_id=key,
            product_id=product_id,
            batch_id=batch_id,
            unit_price=unit_price,
            quantity=requested_qty,
            ceiling=ceiling,
            discount=discount,
            name=name,
        )
        self._lines[key] = line
        log.info("basket_line_added", line_id=key, quantity=requested_qty, unit_price=unit_price)
        return line

    def add_scanned(self, match: BarcodeMatch, qty: int = 1) -> ReplacementLine:
        return self.add(
            match.product_id,
            match.batch_id,
            match.unit_price,
            qty,
            match.available,
            name=match.name,
        )

    def update_quantity(self, line_id: str, new_qty: int) -> ReplacementLine | None:
        line = self._lines.get(line_id)
        if line is None:
            return None
        if new_qty <= 0:
            self.remove(line_id)
            return None
        if new_qty > line.ceiling:
            raise StockExceeded(
                available=line.ceiling,
                already_in_basket=line.quantity,
                wanted=new_qty,
            )
        if line.discount > line.unit_price * new_qty:
            raise InvalidAmount("Discount would exceed the line amount.")
        line.quantity = new_qty
        return line

    def remove(self, line_id: str) -> None:
        if self._lines.pop(line_id, None) is not None:
            log.info("basket_line_removed", line_id=line_id)

    def clear(self) -> None:
        self._lines.clear()

    def subtotal(self) -> int:
        return sum(line.amount for line in self._lines.values())


__all__ = ["ReplacementLine", "ReplacementBasket", "line_key"]
