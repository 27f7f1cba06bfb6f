"""Shared fixtures for the exchange desk tests."""

from __future__ import annotations

from decimal import Decimal

import pytest

from modules.exchange_reconciliation.core.config import ExchangeSettings
from modules.exchange_reconciliation.core.models import OrderSnapshot, OriginalLineItem


class RecordingLogger:
    """Stands in for a module's structlog logger and keeps every event."""

    def __init__(self) -> None:
        self.events: list[tuple[str, str, dict]] = []

    def bind(self, **_context):
        return self

    def _record(self, level: str, event: str, **kw) -> None:
        self.events.append((level, event, kw))

    def debug(self, event: str, **kw) -> None:
        self._record("debug", event, **kw)

    def info(self, event: str, **kw) -> None:
        self._record("info", event, **kw)

    def warning(self, event: str, **kw) -> None:
        self._record("warning", event, **kw)

    def names(self, level: str | None = None) -> list[str]:
        return [event for lvl, event, _ in self.events if level is None or lvl == level]


@pytest.fixture
def recorder() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def settings() -> ExchangeSettings:
    return ExchangeSettings(_env_file=None, order_service_url="http://orders.test/api/")


def make_item(item_id: str, unit_price: int, quantity: int, available: int | None = None, **kw) -> OriginalLineItem:
    return OriginalLineItem(
        item_id=item_id,
        product_id=kw.pop("product_id", f"prod-{item_id}"),
        unit_price=unit_price,
        quantity=quantity,
        available_quantity=quantity if available is None else available,
        **kw,
    )


@pytest.fixture
def order() -> OrderSnapshot:
    return OrderSnapshot(
        order_id="ord-1",
        order_number="ORD-0001",
        items=(
            make_item("A", 1000, 3, barcodes=("A-1", "A-2", "A-3")),
            make_item("B", 500, 2, available=1),
            make_item("C", 250, 1, available=0),
        ),
        vat_rate_percent=Decimal("5"),
    )


@pytest.fixture
def item_factory():
    return make_item
