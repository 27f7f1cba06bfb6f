from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field

# Amounts arrive in major units ("12.50"); notes as {"1000": 2} or "1000:2, 500:1".
Notes = Union[Dict[str, int], str, None]


class OrderLineIn(BaseModel):
    item_id: str
    product_id: str
    unit_price: Decimal
    quantity: int = Field(..., ge=0)
    available_quantity: Optional[int] = Field(None, ge=0)
    barcodes: List[str] = []
    name: Optional[str] = None


class RemovalIn(BaseModel):
    item_id: str
    quantity: int
    barcodes: List[str] = []


class ReplacementIn(BaseModel):
    product_id: str
    batch_id: str
    unit_price: Decimal
    quantity: int
    ceiling: int = Field(..., ge=0)
    discount: Decimal = Decimal("0")
    name: Optional[str] = None


class TenderIn(BaseModel):
    cash: Decimal = Decimal("0")
    card: Decimal = Decimal("0")
    wallet_1: Decimal = Decimal("0")
    wallet_2: Decimal = Decimal("0")
    transaction_fee: Decimal = Decimal("0")
    cash_notes: Notes = None


class PreviewRequest(BaseModel):
    order_id: str
    order_number: Optional[str] = None
    vat_rate: Optional[Decimal] = None
    subtotal_amount: Optional[Decimal] = None
    total_amount: Optional[Decimal] = None
    items: List[OrderLineIn]
    removed: List[RemovalIn] = []
    replacements: List[ReplacementIn] = []
    tender: TenderIn = TenderIn()


class NotesRequest(BaseModel):
    notes: Notes = None


class ChangeRequest(BaseModel):
    expected_change: Decimal
    notes: Notes = None


class TallyEntry(BaseModel):
    received: Notes = None
    returned: Notes = None


class TallyRequest(BaseModel):
    business_day: date
    opening_float: Decimal = Decimal("0")
    entries: List[TallyEntry] = []
    counted_cash: Optional[Decimal] = None
