from __future__ import annotations

from datetime import date

import pytest

from modules.exchange_reconciliation.core.cash_tally import CashDrawerTally


def test_record_sums_notes_without_touching_the_previous_tally() -> None:
    opening = CashDrawerTally(business_day=date(2026, 10, 19), opening_float=1000)
    after_first = opening.record({1000: 2}, {100: 3})
    after_second = after_first.record({500: 1})

    assert opening.transaction_count == 0
    assert opening.received_notes == {}
    assert after_second.received_notes == {1000: 2, 500: 1}
    assert after_second.total_received == 2500
    assert after_second.total_returned == 300
    assert after_second.net_cash == 2200
    assert after_second.transaction_count == 2


def test_reconcile_reports_over_short() -> None:
    tally = CashDrawerTally(business_day=date(2026, 10, 19), opening_float=1000).record({1000: 2}, {100: 3})

    short = tally.reconcile(2650)
    assert (short.expected, short.counted, short.over_short) == (2700, 2650, -50)
    assert tally.reconcile(2700).over_short == 0


def test_notes_on_hand_nets_received_against_returned() -> None:
    tally = CashDrawerTally(business_day=date(2026, 10, 19)).record({500: 2, 100: 1}, {100: 1, 50: 1})
    assert tally.notes_on_hand() == {500: 2, 50: -1}


def test_negative_counts_are_refused() -> None:
    tally = CashDrawerTally(business_day=date(2026, 10, 19))
    with pytest.raises(ValueError):
        tally.record({100: -1})
