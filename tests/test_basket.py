from __future__ import annotations

import pytest

from modules.exchange_reconciliation.core import basket as basket_module
from modules.exchange_reconciliation.core.basket import ReplacementBasket, line_key
from modules.exchange_reconciliation.core.errors import InvalidAmount, InvalidQuantity, StockExceeded
from modules.exchange_reconciliation.core.models import BarcodeMatch


def test_repeated_adds_merge_into_one_line() -> None:
    basket = ReplacementBasket()
    basket.add("p1", "b1", 1000, 2, 10)
    line = basket.add("p1", "b1", 1000, 3, 10)

    assert len(basket) == 1
    assert line.line_id == line_key("p1", "b1") == "p1:b1"
    assert line.quantity == 5
    assert basket.subtotal() == 5000


def test_same_product_in_another_batch_is_a_separate_line() -> None:
    basket = ReplacementBasket()
    basket.add("p1", "b1", 1000, 1, 5)
    basket.add("p1", "b2", 900, 1, 5)

    assert [line.line_id for line in basket.lines()] == ["p1:b1", "p1:b2"]
    assert basket.subtotal() == 1900


def test_add_beyond_ceiling_is_rejected_and_basket_untouched(monkeypatch, recorder) -> None:
    monkeypatch.setattr(basket_module, "log", recorder)
    basket = ReplacementBasket()
    basket.add("p1", "b1", 1000, 4, 8)

    with pytest.raises(StockExceeded) as excinfo:
        basket.add("p1", "b1", 1000, 6, 8)

    err = excinfo.value
    assert (err.available, err.already_in_basket, err.shortfall) == (8, 4, 2)
    assert err.status_code == 409
    assert "4 already in basket" in err.detail
    assert basket.get("p1:b1").quantity == 4
    assert "stock_exceeded" in recorder.names()


@pytest.mark.parametrize("qty", [0, -1])
def test_non_positive_request_is_invalid(qty) -> None:
    basket = ReplacementBasket()
    with pytest.raises(InvalidQuantity):
        basket.add("p1", "b1", 1000, qty, 8)
    assert len(basket) == 0


def test_discount_reduces_line_amount() -> None:
    basket = ReplacementBasket()
    line = basket.add("p1", "b1", 1000, 2, 5, discount=150)

    assert line.amount == 1850
    assert line.as_item().discount == 150
    with pytest.raises(InvalidAmount):
        basket.add("p2", "b1", 100, 1, 5, discount=101)
    with pytest.raises(InvalidAmount):
        basket.add("p2", "b1", -1, 1, 5)


def test_update_quantity() -> None:
    basket = ReplacementBasket()
    basket.add("p1", "b1", 1000, 2, 5)

    assert basket.update_quantity("p1:b1", 5).quantity == 5
    with pytest.raises(StockExceeded):
        basket.update_quantity("p1:b1", 6)
    assert basket.get("p1:b1").quantity == 5
    assert basket.update_quantity("nope", 3) is None

    assert basket.update_quantity("p1:b1", 0) is None
    assert "p1:b1" not in basket


def test_remove_is_idempotent() -> None:
    basket = ReplacementBasket()
    basket.add("p1", "b1", 1000, 1, 5)
    basket.remove("p1:b1")
    basket.remove("p1:b1")
    assert basket.subtotal() == 0


def test_scanned_code_uses_batch_stock_as_ceiling() -> None:
    basket = ReplacementBasket()
    match = BarcodeMatch(code="890123", product_id=42, batch_id=7, unit_price=1250, available=1, name="Tee")

    line = basket.add_scanned(match)
    assert (line.line_id, line.name, line.ceiling) == ("42:7", "Tee", 1)
    with pytest.raises(StockExceeded):
        basket.add_scanned(match)


def test_merge_at_another_price_is_refused() -> None:
    basket = ReplacementBasket()
    basket.add("p1", "b1", 100, 1, 5, discount=100)

    with pytest.raises(InvalidAmount):
        basket.add("p1", "b1", 500, 1, 5, discount=500)

    line = basket.get("p1:b1")
    assert (line.quantity, line.unit_price, line.discount) == (1, 100, 100)
    assert basket.subtotal() == 0


def test_merged_discount_is_bounded_by_the_merged_amount() -> None:
    basket = ReplacementBasket()
    basket.add("p1", "b1", 100, 1, 5, discount=100)
    line = basket.add("p1", "b1", 100, 1, 5, discount=100)

    assert (line.quantity, line.discount, line.amount) == (2, 200, 0)
