from __future__ import annotations

from modules.exchange_reconciliation.core.selection import LineItemSelector, SelectedRemoval


def test_select_and_quantify_lines(order) -> None:
    selector = LineItemSelector(order.items)

    assert selector.select("A")
    assert selector.incomplete() == ["A"]
    assert selector.total() == 0

    assert selector.set_quantity("A", 2)
    assert selector.incomplete() == []
    assert selector.total() == 2000
    assert selector.removals() == [SelectedRemoval("A", 2)]


def test_unknown_or_unselected_lines_are_no_ops(order) -> None:
    selector = LineItemSelector(order.items)

    assert not selector.select("missing")
    assert not selector.set_quantity("A", 1)
    selector.deselect("A")
    assert selector.selected_ids() == []


def test_out_of_range_quantity_keeps_last_valid_value(order) -> None:
    selector = LineItemSelector(order.items)
    selector.select("B")
    assert selector.set_quantity("B", 1)

    assert not selector.set_quantity("B", 2)
    assert not selector.set_quantity("B", 0)
    assert not selector.set_quantity("B", "1")
    assert selector.quantity("B") == 1


def test_line_with_nothing_available_never_gets_a_quantity(order) -> None:
    selector = LineItemSelector(order.items)
    selector.select("C")

    assert not selector.set_quantity("C", 1)
    assert selector.incomplete() == ["C"]


def test_deselect_clears_quantity_and_barcodes(order) -> None:
    selector = LineItemSelector(order.items)
    selector.select("A")
    selector.set_quantity("A", 1)
    selector.set_barcodes("A", ["A-2"])

    assert selector.toggle("A") is False
    assert selector.quantity("A") is None
    selector.select("A")
    assert selector.incomplete() == ["A"]
    assert selector.total() == 0


def test_barcodes_must_match_quantity_and_belong_to_line(order) -> None:
    selector = LineItemSelector(order.items)
    selector.select("A")
    selector.set_quantity("A", 2)

    assert not selector.set_barcodes("A", ["A-1"])
    assert not selector.set_barcodes("A", ["A-1", "A-1"])
    assert not selector.set_barcodes("A", ["A-1", "Z-9"])
    assert selector.set_barcodes("A", ["A-3", "A-1"])
    assert selector.removals()[0].barcodes == ("A-3", "A-1")

    selector.set_quantity("A", 3)
    assert selector.removals()[0].barcodes == ()
