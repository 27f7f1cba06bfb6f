from __future__ import annotations

from typing import Any, Dict, Mapping

from fastapi import FastAPI, Request
from pydantic import ValidationError

from desk.errors import ValidationNormalizeMiddleware, error_response
from desk.logging import get_logger
from modules.exchange_reconciliation.core.cash_tally import CashDrawerTally
from modules.exchange_reconciliation.core.config import ExchangeSettings, get_settings
from modules.exchange_reconciliation.core.denominations import breakdown, count_total, parse_notes
from modules.exchange_reconciliation.core.errors import ExchangeError, InvalidAmount, InvalidOrder
from modules.exchange_reconciliation.core.models import (
    Direction,
    OrderSnapshot,
    OriginalLineItem,
    TenderSplit,
)
from modules.exchange_reconciliation.core.money import from_minor_units, quantize_rate, to_minor_units
from modules.exchange_reconciliation.core.payments import verify_change
from modules.exchange_reconciliation.core.validator import ExchangeValidator
from modules.exchange_reconciliation.tool.schemas import (
    ChangeRequest,
    NotesRequest,
    PreviewRequest,
    TallyRequest,
)

log = get_logger(__name__)

app = FastAPI(title="Exchange Reconciliation")
app.add_middleware(ValidationNormalizeMiddleware)


@app.exception_handler(ExchangeError)
async def exchange_error_handler(request: Request, exc: ExchangeError):
    return error_response(exc.detail, code=exc.code, status_code=exc.status_code)


def _minor(value: Any, settings: ExchangeSettings, label: str) -> int:
    units, error = to_minor_units(value, settings.currency_decimals, label=label)
    if error or units is None:
        raise InvalidAmount(error or f"{label} is required.")
    if units < 0:
        raise InvalidAmount(f"{label} cannot be negative.")
    return units


def _optional_minor(value: Any, settings: ExchangeSettings, label: str) -> int | None:
    if value is None:
        return None
    return _minor(value, settings, label)


def _notes(raw: Any, settings: ExchangeSettings) -> Dict[int, int]:
    notes, error = parse_notes(raw, decimals=settings.currency_decimals)
    if error or notes is None:
        raise InvalidAmount(error or "Enter notes as value:count pairs.")
    return notes


def _money(units: int, settings: ExchangeSettings) -> str:
    return from_minor_units(units, settings.currency_decimals)


def _notes_out(notes: Mapping[int, int], settings: ExchangeSettings) -> Dict[str, int]:
    return {_money(face, settings): count for face, count in sorted(notes.items(), reverse=True)}


def _build_validator(payload: PreviewRequest, settings: ExchangeSettings) -> ExchangeValidator:
    try:
        items = [
            OriginalLineItem(
                item_id=line.item_id,
                product_id=line.product_id,
                unit_price=_minor(line.unit_price, settings, "Unit price"),
                quantity=line.quantity,
                available_quantity=(
                    line.quantity if line.available_quantity is None else line.available_quantity
                ),
                barcodes=tuple(line.barcodes),
                name=line.name,
            )
            for line in payload.items
        ]
        order = OrderSnapshot(
            order_id=payload.order_id,
            order_number=payload.order_number,
            items=tuple(items),
            vat_rate_percent=payload.vat_rate,
            subtotal_amount=_optional_minor(payload.subtotal_amount, settings, "Subtotal"),
            total_amount=_optional_minor(payload.total_amount, settings, "Total"),
        )
    except ValidationError as exc:
        raise InvalidOrder(f"Order is inconsistent: {exc.errors()[0]['msg']}") from exc

    validator = ExchangeValidator.from_order(order, settings)
    for removal in payload.removed:
        validator.select(removal.item_id)
        validator.set_quantity(removal.item_id, removal.quantity)
        if removal.barcodes:
            validator.set_barcodes(removal.item_id, removal.barcodes)

    for line in payload.replacements:
        validator.add_replacement(
            line.product_id,
            line.batch_id,
            _minor(line.unit_price, settings, "Unit price"),
            line.quantity,
            line.ceiling,
            discount=_minor(line.discount, settings, "Discount"),
            name=line.name,
        )

    tender = payload.tender
    validator.set_tender(
        TenderSplit(
            cash=_minor(tender.cash, settings, "Cash"),
            card=_minor(tender.card, settings, "Card"),
            wallet_1=_minor(tender.wallet_1, settings, "Wallet 1"),
            wallet_2=_minor(tender.wallet_2, settings, "Wallet 2"),
            transaction_fee=_minor(tender.transaction_fee, settings, "Transaction fee"),
            cash_notes=_notes(tender.cash_notes, settings),
        )
    )
    return validator


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/preview")
def preview(payload: PreviewRequest):
    settings = get_settings()
    validator = _build_validator(payload, settings)
    outcome = validator.outcome()
    problems = validator.problems()

    change_notes: Dict[str, int] = {}
    if outcome.direction == Direction.PAYMENT and outcome.excess:
        notes, _ = breakdown(outcome.excess, settings.denomination_faces())
        change_notes = _notes_out(notes, settings)

    log.info(
        "exchange_preview",
        order_id=payload.order_id,
        difference=outcome.difference,
        settlement=outcome.settlement,
        ready=not problems,
    )
    return {
        "order_id": validator.order_id,
        "ready": not problems,
        "problems": problems,
        "original_amount": _money(outcome.original_amount, settings),
        "new_subtotal": _money(outcome.new_subtotal, settings),
        "vat_rate": str(quantize_rate(outcome.vat_rate)),
        "vat_amount": _money(outcome.vat_amount, settings),
        "total_new_amount": _money(outcome.total_new_amount, settings),
        "difference": _money(outcome.difference, settings),
        "total_tendered": _money(outcome.total_tendered, settings),
        "transaction_fee": _money(outcome.transaction_fee, settings),
        "remaining_balance": _money(outcome.remaining_balance, settings),
        "excess": _money(outcome.excess, settings),
        "settlement": outcome.settlement,
        "direction": outcome.direction,
        "change_notes": change_notes,
        "summary": validator.confirmation_summary(),
    }


@app.post("/denominations/total")
def denominations_total(payload: NotesRequest):
    settings = get_settings()
    notes = _notes(payload.notes, settings)
    return {
        "notes": _notes_out(notes, settings),
        "total": _money(count_total(notes), settings),
    }


@app.post("/change/verify")
def change_verify(payload: ChangeRequest):
    settings = get_settings()
    expected = _minor(payload.expected_change, settings, "Expected change")
    check = verify_change(expected, _notes(payload.notes, settings))
    suggested, remainder = breakdown(expected, settings.denomination_faces())
    return {
        "expected": _money(check.expected, settings),
        "entered": _money(check.entered, settings),
        "shortfall": _money(check.shortfall, settings),
        "matches": check.matches,
        "suggested_notes": _notes_out(suggested, settings),
        "unbreakable": _money(remainder, settings),
    }


@app.post("/tally")
def tally(payload: TallyRequest):
    settings = get_settings()
    drawer = CashDrawerTally(
        business_day=payload.business_day,
        opening_float=_minor(payload.opening_float, settings, "Opening float"),
    )
    for entry in payload.entries:
        drawer = drawer.record(_notes(entry.received, settings), _notes(entry.returned, settings))

    result: Dict[str, Any] = {
        "business_day": drawer.business_day.isoformat(),
        "transaction_count": drawer.transaction_count,
        "received_notes": _notes_out(drawer.received_notes, settings),
        "returned_notes": _notes_out(drawer.returned_notes, settings),
        "notes_on_hand": _notes_out(drawer.notes_on_hand(), settings),
        "total_received": _money(drawer.total_received, settings),
        "total_returned": _money(drawer.total_returned, settings),
        "net_cash": _money(drawer.net_cash, settings),
    }
    if payload.counted_cash is not None:
        check = drawer.reconcile(_minor(payload.counted_cash, settings, "Counted cash"))
        result.update(
            {
                "expected_cash": _money(check.expected, settings),
                "counted_cash": _money(check.counted, settings),
                "over_short": _money(check.over_short, settings),
            }
        )
    return result
