from __future__ import annotations

from decimal import Decimal

import pytest

from modules.exchange_reconciliation.core.errors import InvalidAmount
from modules.exchange_reconciliation.core.models import Direction, OrderSnapshot
from modules.exchange_reconciliation.core.pricing import reconcile


def test_vat_is_taken_once_on_the_subtotal() -> None:
    price = reconcile(0, 333, Decimal("5"))

    assert price.vat_amount == 17
    assert price.total_new_amount == 350
    assert price.difference == 350


@pytest.mark.parametrize(
    ("original", "subtotal", "difference", "direction"),
    [
        (1000, 2000, 1100, Direction.PAYMENT),
        (2100, 2000, 0, Direction.NONE),
        (5000, 2000, -2900, Direction.REFUND),
    ],
)
def test_difference_sign_convention(original, subtotal, difference, direction) -> None:
    price = reconcile(original, subtotal, "5")
    assert price.difference == difference
    assert price.direction == direction


def test_bad_rates_are_rejected() -> None:
    with pytest.raises(InvalidAmount):
        reconcile(0, 100, "-1")
    with pytest.raises(InvalidAmount):
        reconcile(0, 100, "five")
    with pytest.raises(InvalidAmount):
        reconcile(-1, 100, "5")


def test_vat_rate_is_derived_from_order_totals() -> None:
    order = OrderSnapshot(order_id=7, subtotal_amount=33300, total_amount=34965)
    assert order.effective_vat_rate() == Decimal("5.00")
    assert order.label == "7"

    assert OrderSnapshot(order_id="x", subtotal_amount=0, total_amount=0).effective_vat_rate() == 0
    recorded = OrderSnapshot(order_id="x", vat_rate_percent="7.5", subtotal_amount=100, total_amount=105)
    assert recorded.effective_vat_rate() == Decimal("7.5")


def test_derived_rate_is_not_rounded_before_use() -> None:
    order = OrderSnapshot(order_id="o-3", subtotal_amount=30000, total_amount=31000)

    rate = order.effective_vat_rate()
    assert rate != Decimal("3.33")
    assert reconcile(0, 1000000, rate).vat_amount == 33333
