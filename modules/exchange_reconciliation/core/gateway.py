"""Collaborators on the far side of the engine: order, stock, barcode, submit.

``OrderServiceClient`` speaks JSON over HTTP to the back-office order
service. Amounts on the wire are decimal strings; they are converted to
minor units here so the engine only ever sees integers.
"""
from __future__ import annotations

import asyncio
import json
from http.client import HTTPException
from typing import Any, Dict, Protocol
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

from desk.logging import get_logger
from modules.exchange_reconciliation.core.config import ExchangeSettings, get_settings
from modules.exchange_reconciliation.core.errors import GatewayError, SubmissionFailure
from modules.exchange_reconciliation.core.models import (
    BarcodeMatch,
    ExchangeReceipt,
    ExchangeRequest,
    OrderSnapshot,
    OriginalLineItem,
)
from modules.exchange_reconciliation.core.money import from_minor_units, parse_decimal, to_minor_units

log = get_logger(__name__)


class OrderSource(Protocol):
    def fetch_order(self, order_id: str) -> OrderSnapshot: ...


class InventorySource(Protocol):
    def batch_available(self, product_id: str, batch_id: str) -> int: ...


class BarcodeResolver(Protocol):
    def resolve(self, code: str) -> BarcodeMatch: ...


class ExchangeSubmitter(Protocol):
    async def submit_exchange(self, request: ExchangeRequest) -> ExchangeReceipt: ...


def _error_text(raw: bytes) -> str | None:
    try:
        data = json.loads(raw.decode("utf-8") or "{}")
    except (ValueError, UnicodeDecodeError):
        text = raw.decode("utf-8", errors="replace").strip()
        return text or None
    if isinstance(data, dict):
        for key in ("error", "message", "detail"):
            if data.get(key):
                return str(data[key])
    return None


class OrderServiceClient:
    def __init__(self, settings: ExchangeSettings | None = None) -> None:
        self.settings = settings or get_settings()

    # ---- transport ----
    def _request_json(self, method: str, path: str, payload: Dict[str, Any] | None = None) -> Dict[str, Any]:
        url = f"{self.settings.order_service_url}{path}"
        data = None
        headers = {"Accept": "application/json"}
        if payload is not None:
            data = json.dumps(payload).encode("utf-8")
            headers["Content-Type"] = "application/json"
        req = Request(url, data=data, headers=headers, method=method)
        with urlopen(req, timeout=self.settings.request_timeout) as resp:
            raw = resp.read().decode("utf-8")
        body = json.loads(raw or "{}")
        if not isinstance(body, dict):
            raise GatewayError(f"Unexpected response from {path}.")
        data = body.get("data")
        return data if isinstance(data, dict) else body

    def _get(self, path: str) -> Dict[str, Any]:
        try:
            return self._request_json("GET", path)
        except HTTPError as exc:
            detail = _error_text(exc.read()) or f"HTTP {exc.code}"
            raise GatewayError(f"Order service error: {detail}") from exc
        except (URLError, HTTPException, OSError, ValueError) as exc:
            raise GatewayError(f"Order service unreachable: {exc}") from exc

    # ---- conversions ----
    def _minor(self, value: Any, label: str) -> int:
        units, error = to_minor_units(value, self.settings.currency_decimals, label=label)
        if error or units is None:
            raise GatewayError(f"Order service sent a bad {label.lower()}: {error}")
        return units

    def _optional_minor(self, value: Any, label: str) -> int | None:
        if value is None or value == "":
            return None
        return self._minor(value, label)

    def _wire(self, units: int) -> str:
        return from_minor_units(units, self.settings.currency_decimals)

    def _parse_item(self, raw: Dict[str, Any]) -> OriginalLineItem:
        quantity = int(raw.get("quantity") or 0)
        available = raw.get("available_quantity")
        barcodes = raw.get("barcodes") or []
        return OriginalLineItem(
            item_id=raw.get("item_id", raw.get("id")),
            product_id=raw.get("product_id"),
            unit_price=self._minor(raw.get("unit_price"), "Unit price"),
            quantity=quantity,
            available_quantity=quantity if available is None else int(available),
            barcodes=tuple(str(code) for code in barcodes),
            name=raw.get("product_name") or raw.get("name"),
        )

    # ---- collaborator interfaces ----
    def fetch_order(self, order_id: str) -> OrderSnapshot:
        body = self._get(f"/orders/{quote(str(order_id), safe='')}")
        rate = body.get("vat_rate")
        vat_rate = None
        if rate not in (None, ""):
            vat_rate, error = parse_decimal(rate, label="VAT rate")
            if error:
                raise GatewayError(f"Order service sent a bad VAT rate: {error}")
        try:
            return OrderSnapshot(
                order_id=body.get("id", order_id),
                order_number=body.get("order_number"),
                items=tuple(self._parse_item(item) for item in body.get("items") or []),
                vat_rate_percent=vat_rate,
                subtotal_amount=self._optional_minor(body.get("subtotal_amount"), "Subtotal"),
                total_amount=self._optional_minor(body.get("total_amount"), "Total"),
            )
        except ValueError as exc:
            raise GatewayError(f"Order {order_id} could not be read: {exc}") from exc

    def batch_available(self, product_id: str, batch_id: str) -> int:
        query = urlencode({"product_id": product_id})
        body = self._get(f"/batches/{quote(str(batch_id), safe='')}?{query}")
        try:
            return max(int(body.get("quantity") or 0), 0)
        except (TypeError, ValueError) as exc:
            raise GatewayError(f"Batch {batch_id} has no usable quantity.") from exc

    def resolve(self, code: str) -> BarcodeMatch:
        body = self._get(f"/barcodes/{quote(code, safe='')}")
        price = body.get("unit_price", body.get("sell_price"))
        try:
            return BarcodeMatch(
                code=code,
                product_id=body.get("product_id"),
                batch_id=body.get("batch_id"),
                unit_price=self._minor(price, "Unit price"),
                available=int(body.get("available", body.get("quantity")) or 0),
                name=body.get("name"),
            )
        except (TypeError, ValueError) as exc:
            raise GatewayError(f"Barcode {code} could not be resolved: {exc}") from exc

    def exchange_payload(self, request: ExchangeRequest) -> Dict[str, Any]:
        tender = request.tender
        return {
            "order_id": request.order_id,
            "removed_items": [
                {
                    "line_item_id": item.line_item_id,
                    "quantity": item.quantity,
                    "barcodes": list(item.barcodes),
                }
                for item in request.removed_items
            ],
            "replacement_items": [
                {
                    "product_id": item.product_id,
                    "batch_id": item.batch_id,
                    "quantity": item.quantity,
                    "unit_price": self._wire(item.unit_price),
                    "discount": self._wire(item.discount),
                }
                for item in request.replacement_items
            ],
            "tender": {
                "type": tender.type,
                "cash": self._wire(tender.cash),
                "card": self._wire(tender.card),
                "wallet_1": self._wire(tender.wallet_1),
                "wallet_2": self._wire(tender.wallet_2),
                "transaction_fee": self._wire(tender.transaction_fee),
                "total": self._wire(tender.total),
            },
            "expected_difference": self._wire(request.expected_difference),
        }

    def _post_exchange(self, request: ExchangeRequest) -> ExchangeReceipt:
        path = f"/orders/{quote(request.order_id, safe='')}/exchange"
        try:
            body = self._request_json("POST", path, self.exchange_payload(request))
        except HTTPError as exc:
            detail = _error_text(exc.read()) or f"HTTP {exc.code}"
            raise SubmissionFailure(detail) from exc
        except (URLError, HTTPException, OSError, ValueError) as exc:
            raise SubmissionFailure(f"Order service unreachable: {exc}") from exc
        except GatewayError as exc:
            raise SubmissionFailure(exc.detail) from exc

        if body.get("success") is False:
            raise SubmissionFailure(str(body.get("error") or body.get("message") or "Exchange rejected."))
        try:
            difference = self._minor(body.get("difference"), "Difference")
            due = self._optional_minor(body.get("due", body.get("totalDue")), "Due")
        except GatewayError as exc:
            raise SubmissionFailure(exc.detail) from exc
        return ExchangeReceipt(
            order_id=request.order_id,
            difference=difference,
            expected_difference=request.expected_difference,
            settlement=body.get("settlement"),
            due=due,
            message=body.get("message"),
        )

    async def submit_exchange(self, request: ExchangeRequest) -> ExchangeReceipt:
        log.info("exchange_posting", order_id=request.order_id)
        return await asyncio.to_thread(self._post_exchange, request)


__all__ = [
    "OrderSource",
    "InventorySource",
    "BarcodeResolver",
    "ExchangeSubmitter",
    "OrderServiceClient",
]
