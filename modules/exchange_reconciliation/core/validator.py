from __future__ import annotations

import asyncio
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Optional

from desk.logging import get_logger
from modules.exchange_reconciliation.core.basket import ReplacementBasket, ReplacementLine
from modules.exchange_reconciliation.core.config import ExchangeSettings, get_settings
from modules.exchange_reconciliation.core.errors import (
    ExchangeLocked,
    GatewayError,
    IncompleteSelection,
    SettlementPending,
    SubmissionFailure,
)
from modules.exchange_reconciliation.core.gateway import BarcodeResolver, ExchangeSubmitter
from modules.exchange_reconciliation.core.models import (
    ExchangeReceipt,
    ExchangeRequest,
    OrderSnapshot,
    OriginalLineItem,
    RemovedItem,
    Settlement,
    TenderPayload,
    TenderSplit,
)
from modules.exchange_reconciliation.core.money import from_minor_units
from modules.exchange_reconciliation.core.payments import Allocation, allocate
from modules.exchange_reconciliation.core.pricing import PriceBreakdown, reconcile
from modules.exchange_reconciliation.core.selection import LineItemSelector

log = get_logger(__name__)


class ExchangeState:
    IDLE = "idle"
    ITEMS_SELECTED = "items_selected"
    REPLACEMENTS_ADDED = "replacements_added"
    REVIEWING = "reviewing"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    FAILED = "failed"

    EDITABLE = frozenset({IDLE, ITEMS_SELECTED, REPLACEMENTS_ADDED, REVIEWING})


@dataclass(frozen=True)
class ExchangeOutcome:
    original_amount: int
    new_subtotal: int
    vat_rate: Decimal
    vat_amount: int
    total_new_amount: int
    difference: int
    total_tendered: int
    transaction_fee: int
    remaining_balance: int
    excess: int
    settlement: str
    direction: str

    @classmethod
    def build(cls, price: PriceBreakdown, allocation: Allocation) -> "ExchangeOutcome":
        return cls(
            original_amount=price.original_amount,
            new_subtotal=price.new_subtotal,
            vat_rate=price.vat_rate,
            vat_amount=price.vat_amount,
            total_new_amount=price.total_new_amount,
            difference=price.difference,
            total_tendered=allocation.total_tendered,
            transaction_fee=allocation.transaction_fee,
            remaining_balance=allocation.due,
            excess=allocation.excess,
            settlement=allocation.settlement,
            direction=allocation.direction,
        )

    @property
    def due(self) -> int:
        return self.remaining_balance

    @property
    def is_partial(self) -> bool:
        return self.settlement in Settlement.PARTIAL


class ExchangeValidator:
    """One exchange transaction from first tick-box to the order service's answer.

    Editing is allowed until submission starts. After every edit the state
    falls back to the furthest pre-review step whose guard still holds, so a
    change made while reviewing always forces a fresh review.
    """

    def __init__(
        self,
        order_id: str,
        items: Iterable[OriginalLineItem],
        vat_rate_percent: Decimal,
        *,
        order_label: str | None = None,
        settings: ExchangeSettings | None = None,
    ) -> None:
        self.order_id = order_id
        self.order_label = order_label or order_id
        self.vat_rate_percent = Decimal(vat_rate_percent)
        self.settings = settings or get_settings()
        self.selector = LineItemSelector(items)
        self.basket = ReplacementBasket()
        self.tender = TenderSplit()
        self.state = ExchangeState.IDLE
        self.receipt: Optional[ExchangeReceipt] = None
        self.last_failure: Optional[str] = None
        self._log = log.bind(order_id=order_id)

    @classmethod
    def from_order(cls, order: OrderSnapshot, settings: ExchangeSettings | None = None) -> "ExchangeValidator":
        return cls(
            order.order_id,
            order.items,
            order.effective_vat_rate(),
            order_label=order.label,
            settings=settings,
        )

    # ---- state bookkeeping ----
    def _ensure_editable(self) -> None:
        if self.state not in ExchangeState.EDITABLE:
            raise ExchangeLocked(f"Exchange is {self.state}; it can no longer be edited.")

    def _settle_state(self) -> None:
        if self.state not in ExchangeState.EDITABLE:
            return
        previous = self.state
        if not self.selector.removals():
            self.state = ExchangeState.IDLE
        elif not len(self.basket):
            self.state = ExchangeState.ITEMS_SELECTED
        else:
            self.state = ExchangeState.REPLACEMENTS_ADDED
        if previous != self.state:
            self._log.debug("exchange_state", previous=previous, state=self.state)

    # ---- editing: removed items ----
    def select(self, item_id: str) -> bool:
        self._ensure_editable()
        ok = self.selector.select(item_id)
        self._settle_state()
        return ok

    def deselect(self, item_id: str) -> None:
        self._ensure_editable()
        self.selector.deselect(item_id)
        self._settle_state()

    def set_quantity(self, item_id: str, qty: int) -> bool:
        self._ensure_editable()
        ok = self.selector.set_quantity(item_id, qty)
        self._settle_state()
        return ok

    def set_barcodes(self, item_id: str, barcodes: Iterable[str]) -> bool:
        self._ensure_editable()
        ok = self.selector.set_barcodes(item_id, list(barcodes))
        self._settle_state()
        return ok

    # ---- editing: replacements ----
    def add_replacement(
        self,
        product_id: str,
        batch_id: str,
        unit_price: int,
        qty: int,
        ceiling: int,
        *,
        discount: int = 0,
        name: str | None = None,
    ) -> ReplacementLine:
        self._ensure_editable()
        try:
            return self.basket.add(
                product_id, batch_id, unit_price, qty, ceiling, discount=discount, name=name
            )
        finally:
            self._settle_state()

    def add_scanned(self, code: str, resolver: BarcodeResolver, qty: int = 1) -> ReplacementLine:
        self._ensure_editable()
        match = resolver.resolve(code)
        try:
            return self.basket.add_scanned(match, qty)
        finally:
            self._settle_state()

    def update_replacement(self, line_id: str, qty: int) -> ReplacementLine | None:
        self._ensure_editable()
        try:
            return self.basket.update_quantity(line_id, qty)
        finally:
            self._settle_state()

    def remove_replacement(self, line_id: str) -> None:
        self._ensure_editable()
        self.basket.remove(line_id)
        self._settle_state()

    # ---- editing: tender ----
    def set_tender(self, tender: TenderSplit) -> None:
        self._ensure_editable()
        self.tender = tender
        if self.state == ExchangeState.REVIEWING:
            self._settle_state()

    # ---- figures ----
    def price(self) -> PriceBreakdown:
        return reconcile(self.selector.total(), self.basket.subtotal(), self.vat_rate_percent)

    def outcome(self) -> ExchangeOutcome:
        price = self.price()
        return ExchangeOutcome.build(price, allocate(self.tender, price.difference))

    def problems(self) -> List[str]:
        """Form messages that block review, in the order the operator should fix them."""
        issues: List[str] = []
        if not self.selector.selected_ids():
            issues.append("Select at least one product to exchange.")
        elif self.selector.incomplete():
            issues.append("Set valid quantities for all selected products.")
        if not len(self.basket):
            issues.append("Add at least one replacement product.")
        return issues

    def review(self) -> ExchangeOutcome:
        self._ensure_editable()
        issues = self.problems()
        if issues:
            raise IncompleteSelection(" ".join(issues))
        self.state = ExchangeState.REVIEWING
        outcome = self.outcome()
        self._log.info(
            "exchange_review",
            difference=outcome.difference,
            settlement=outcome.settlement,
            remaining=outcome.remaining_balance,
        )
        return outcome

    def _money(self, units: int) -> str:
        return f"{self.settings.currency_symbol}{from_minor_units(units, self.settings.currency_decimals)}"

    def confirmation_summary(self) -> str:
        outcome = self.outcome()
        lines = [
            f"Process exchange for order {self.order_label}?",
            "",
            f"Exchanging {len(self.selector.removals())} item(s)",
            f"Adding {len(self.basket)} replacement item(s)",
            "",
        ]
        if outcome.difference > 0:
            lines.append(f"Customer owes: {self._money(outcome.difference)}")
            if outcome.transaction_fee:
                lines.append(f"Transaction fee: {self._money(outcome.transaction_fee)}")
            lines.append(f"Collected: {self._money(outcome.total_tendered)}")
            if outcome.remaining_balance > 0:
                lines.append(f"Remaining: {self._money(outcome.remaining_balance)} (can pay later)")
            else:
                lines.append("Fully paid")
                if outcome.excess:
                    lines.append(f"Change due: {self._money(outcome.excess)}")
        elif outcome.difference < 0:
            lines.append(f"Refund required: {self._money(-outcome.difference)}")
            lines.append(f"Refunded: {self._money(outcome.total_tendered)}")
            if outcome.remaining_balance > 0:
                lines.append(f"Remaining: {self._money(outcome.remaining_balance)} (can refund later)")
            else:
                lines.append("Fully refunded")
        else:
            lines.append("No payment difference - even exchange")
        return "\n".join(lines)

    # ---- submission ----
    def build_request(self, outcome: ExchangeOutcome) -> ExchangeRequest:
        tender = self.tender
        cash = outcome.total_tendered - tender.card - tender.wallet_1 - tender.wallet_2
        return ExchangeRequest(
            order_id=self.order_id,
            removed_items=[
                RemovedItem(line_item_id=r.line_item_id, quantity=r.quantity, barcodes=r.barcodes)
                for r in self.selector.removals()
            ],
            replacement_items=[line.as_item() for line in self.basket.lines()],
            tender=TenderPayload(
                type=outcome.direction,
                cash=cash,
                card=tender.card,
                wallet_1=tender.wallet_1,
                wallet_2=tender.wallet_2,
                transaction_fee=outcome.transaction_fee,
                total=outcome.total_tendered,
            ),
            expected_difference=outcome.difference,
        )

    def _record_failure(self, detail: str) -> None:
        self.state = ExchangeState.FAILED
        self.last_failure = detail
        self._log.warning("exchange_failed", error=detail)
        # nothing was committed; the operator may fix and resubmit
        self.state = ExchangeState.REVIEWING

    async def submit(
        self,
        submitter: ExchangeSubmitter,
        *,
        acknowledge_balance: bool = False,
    ) -> ExchangeReceipt | None:
        if self.state == ExchangeState.SUBMITTING:
            self._log.info("exchange_submit_ignored", reason="already_submitting")
            return None
        if self.state != ExchangeState.REVIEWING:
            raise IncompleteSelection("Review the exchange before submitting it.")

        outcome = self.outcome()
        if outcome.is_partial and not acknowledge_balance:
            verb = "pay" if outcome.settlement == Settlement.PARTIALLY_PAID else "refund"
            raise SettlementPending(
                f"{self._money(outcome.remaining_balance)} is left to {verb} later; "
                "confirm the outstanding balance to continue.",
                settlement=outcome.settlement,
                due=outcome.remaining_balance,
            )

        request = self.build_request(outcome)
        self.state = ExchangeState.SUBMITTING
        self.last_failure = None
        self._log.info("exchange_submitting", expected_difference=outcome.difference)
        try:
            receipt = await submitter.submit_exchange(request)
        except SubmissionFailure as exc:
            self._record_failure(exc.detail)
            raise
        except GatewayError as exc:
            self._record_failure(exc.detail)
            raise SubmissionFailure(exc.detail) from exc
        except asyncio.CancelledError:
            self._record_failure("Submission was cancelled.")
            raise
        except Exception as exc:
            detail = str(exc) or exc.__class__.__name__
            self._record_failure(detail)
            raise SubmissionFailure(f"Exchange submission failed: {detail}") from exc

        self.receipt = receipt
        self.state = ExchangeState.COMPLETED
        if receipt.drift:
            self._log.warning(
                "exchange_drift",
                expected=receipt.expected_difference,
                server=receipt.difference,
                drift=receipt.drift,
            )
        self._log.info("exchange_submitted", difference=receipt.difference, settlement=receipt.settlement)
        return receipt


__all__ = ["ExchangeState", "ExchangeOutcome", "ExchangeValidator"]
