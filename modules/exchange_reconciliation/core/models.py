"""Data contracts that cross the engine boundary.

Every amount is an ``int`` of currency minor units; conversion from the
decimal strings used on the wire happens before these models are built.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Settlement:
    FULLY_PAID = "fully_paid"
    PARTIALLY_PAID = "partially_paid"
    FULLY_REFUNDED = "fully_refunded"
    PARTIALLY_REFUNDED = "partially_refunded"
    EVEN_EXCHANGE = "even_exchange"

    PARTIAL = frozenset({PARTIALLY_PAID, PARTIALLY_REFUNDED})


class Direction:
    PAYMENT = "payment"
    REFUND = "refund"
    NONE = "none"


CHANNELS: Tuple[str, ...] = ("cash", "card", "wallet_1", "wallet_2")


def _as_id(v):
    if v is None:
        return v
    return str(v).strip()


def _check_notes(notes: Dict[int, int]) -> Dict[int, int]:
    for face, count in notes.items():
        if face <= 0:
            raise ValueError("denomination face values must be positive")
        if count < 0:
            raise ValueError("denomination counts must be non-negative")
    return notes


class OriginalLineItem(BaseModel):
    """One line of the source order, as loaded from the order service."""

    model_config = ConfigDict(frozen=True)

    item_id: str
    product_id: str
    unit_price: int = Field(..., ge=0)
    quantity: int = Field(..., ge=0)
    available_quantity: int = Field(..., ge=0)
    barcodes: Tuple[str, ...] = ()
    name: Optional[str] = None

    @field_validator("item_id", "product_id", mode="before")
    @classmethod
    def _v_ids(cls, v):
        return _as_id(v)

    @model_validator(mode="after")
    def _v_quantities(self):
        if self.available_quantity > self.quantity:
            raise ValueError("available_quantity cannot exceed quantity")
        if len(self.barcodes) > self.quantity:
            raise ValueError("more barcodes than purchased units")
        if len(set(self.barcodes)) != len(self.barcodes):
            raise ValueError("barcodes must be unique")
        return self


class OrderSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_id: str
    order_number: Optional[str] = None
    items: Tuple[OriginalLineItem, ...] = ()
    vat_rate_percent: Optional[Decimal] = None
    subtotal_amount: Optional[int] = Field(None, ge=0)
    total_amount: Optional[int] = Field(None, ge=0)

    @field_validator("order_id", mode="before")
    @classmethod
    def _v_id(cls, v):
        return _as_id(v)

    @field_validator("vat_rate_percent")
    @classmethod
    def _v_rate(cls, v):
        if v is not None and v < 0:
            raise ValueError("vat_rate_percent must be non-negative")
        return v

    @model_validator(mode="after")
    def _v_unique_items(self):
        ids = [item.item_id for item in self.items]
        if len(set(ids)) != len(ids):
            raise ValueError("duplicate item_id in order")
        return self

    def effective_vat_rate(self) -> Decimal:
        """Recorded rate, or the exact rate implied by the order's own totals.

        The ratio is left unrounded; VAT is rounded once, on the amount.
        """
        if self.vat_rate_percent is not None:
            return Decimal(self.vat_rate_percent)
        if not self.subtotal_amount or self.total_amount is None:
            return Decimal("0")
        vat = self.total_amount - self.subtotal_amount
        return Decimal(vat) * Decimal(100) / Decimal(self.subtotal_amount)

    @property
    def label(self) -> str:
        return self.order_number or self.order_id


class TenderSplit(BaseModel):
    """Everything the customer handed over (or was handed back) for one exchange.

    Frozen: each ``with_*`` call returns a new split, so a form can keep the
    previous value around and the allocator sees one consistent snapshot.
    """

    model_config = ConfigDict(frozen=True)

    cash: int = Field(0, ge=0)
    card: int = Field(0, ge=0)
    wallet_1: int = Field(0, ge=0)
    wallet_2: int = Field(0, ge=0)
    transaction_fee: int = Field(0, ge=0)
    cash_notes: Dict[int, int] = Field(default_factory=dict)

    @field_validator("cash_notes")
    @classmethod
    def _v_notes(cls, v: Dict[int, int]) -> Dict[int, int]:
        return _check_notes(v)

    def _rebuild(self, **changes) -> "TenderSplit":
        data = self.model_dump()
        data.update(changes)
        return TenderSplit.model_validate(data)

    def with_channel(self, channel: str, amount: int) -> "TenderSplit":
        if channel not in CHANNELS:
            raise ValueError(f"unknown tender channel '{channel}'")
        return self._rebuild(**{channel: amount})

    def with_notes(self, notes: Dict[int, int]) -> "TenderSplit":
        return self._rebuild(cash_notes={face: count for face, count in notes.items() if count})

    def with_fee(self, fee: int) -> "TenderSplit":
        return self._rebuild(transaction_fee=fee)


class BarcodeMatch(BaseModel):
    """A scanned code resolved to a sellable (product, batch)."""

    model_config = ConfigDict(frozen=True)

    code: str
    product_id: str
    batch_id: str
    unit_price: int = Field(..., ge=0)
    available: int = Field(..., ge=0)
    name: Optional[str] = None

    @field_validator("product_id", "batch_id", mode="before")
    @classmethod
    def _v_ids(cls, v):
        return _as_id(v)


class RemovedItem(BaseModel):
    line_item_id: str
    quantity: int = Field(..., gt=0)
    barcodes: Tuple[str, ...] = ()


class ReplacementItem(BaseModel):
    product_id: str
    batch_id: str
    quantity: int = Field(..., gt=0)
    unit_price: int = Field(..., ge=0)
    discount: int = Field(0, ge=0)


class TenderPayload(BaseModel):
    type: str
    cash: int = 0
    card: int = 0
    wallet_1: int = 0
    wallet_2: int = 0
    transaction_fee: int = 0
    total: int = 0


class ExchangeRequest(BaseModel):
    order_id: str
    removed_items: List[RemovedItem]
    replacement_items: List[ReplacementItem]
    tender: TenderPayload
    expected_difference: int


class ExchangeReceipt(BaseModel):
    """The order service's authoritative answer to a submitted exchange."""

    order_id: str
    difference: int
    expected_difference: int
    settlement: Optional[str] = None
    due: Optional[int] = None
    message: Optional[str] = None

    @property
    def drift(self) -> int:
        return self.difference - self.expected_difference


__all__ = [
    "Settlement",
    "Direction",
    "CHANNELS",
    "OriginalLineItem",
    "OrderSnapshot",
    "TenderSplit",
    "BarcodeMatch",
    "RemovedItem",
    "ReplacementItem",
    "TenderPayload",
    "ExchangeRequest",
    "ExchangeReceipt",
]
