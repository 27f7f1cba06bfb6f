from __future__ import annotations

from fastapi import status


class ExchangeError(Exception):
    """Exchange-level exception normalized by the tool's error handler."""

    default_code = "exchange_error"
    default_status = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        detail: str,
        *,
        status_code: int | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code or self.default_status
        self.code = code or self.default_code


class InvalidQuantity(ExchangeError):
    default_code = "invalid_quantity"


class InvalidAmount(ExchangeError):
    default_code = "invalid_amount"


class InvalidOrder(ExchangeError):
    """The order snapshot contradicts itself (duplicate lines, impossible stock)."""

    default_code = "invalid_order"


class StockExceeded(ExchangeError):
    default_code = "stock_exceeded"
    default_status = status.HTTP_409_CONFLICT

    def __init__(self, *, available: int, already_in_basket: int, wanted: int) -> None:
        # wanted: the quantity the line would hold if the change went through
        self.available = available
        self.already_in_basket = already_in_basket
        self.wanted = wanted
        self.shortfall = wanted - available
        super().__init__(
            f"Only {available} units available ({already_in_basket} already in basket); "
            f"short by {self.shortfall}."
        )


class IncompleteSelection(ExchangeError):
    default_code = "incomplete_selection"


class SettlementPending(ExchangeError):
    default_code = "settlement_pending"

    def __init__(self, detail: str, *, settlement: str, due: int) -> None:
        super().__init__(detail)
        self.settlement = settlement
        self.due = due


class ExchangeLocked(ExchangeError):
    default_code = "exchange_locked"
    default_status = status.HTTP_409_CONFLICT


class GatewayError(ExchangeError):
    default_code = "gateway_error"
    default_status = status.HTTP_502_BAD_GATEWAY


class SubmissionFailure(GatewayError):
    """The order service refused or never answered the exchange request."""

    default_code = "submission_failed"


__all__ = [
    "ExchangeError",
    "InvalidQuantity",
    "InvalidAmount",
    "InvalidOrder",
    "StockExceeded",
    "IncompleteSelection",
    "SettlementPending",
    "ExchangeLocked",
    "GatewayError",
    "SubmissionFailure",
]
