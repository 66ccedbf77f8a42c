from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class TransactionType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    DIVIDEND_REINVESTMENT = "DIVIDEND_REINVESTMENT"
    OTHER = "OTHER"

    @property
    def adds_shares(self) -> bool:
        return self in (TransactionType.BUY, TransactionType.DIVIDEND_REINVESTMENT)


class CashFlowClass(str, Enum):
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    WITHDRAWAL = "WITHDRAWAL"
    ISA_TRANSFER_IN = "ISA_TRANSFER_IN"
    OTHER = "OTHER"

    @property
    def is_external(self) -> bool:
        return self != CashFlowClass.OTHER


def classify_transaction_type(value: object) -> TransactionType:
    if isinstance(value, TransactionType):
        return value
    text = str(value or "").upper()
    if "BUY" in text:
        return TransactionType.BUY
    if "DIVIDEND REINVESTMENT" in text:
        return TransactionType.DIVIDEND_REINVESTMENT
    if "SELL" in text:
        return TransactionType.SELL
    return TransactionType.OTHER


def classify_cash_activity(value: object) -> CashFlowClass:
    if isinstance(value, CashFlowClass):
        return value
    text = str(value or "").upper()
    if "PAYMENT RECEIVED" in text:
        return CashFlowClass.PAYMENT_RECEIVED
    if "WITHDRAWAL" in text:
        return CashFlowClass.WITHDRAWAL
    if "ISA TRANSFER IN" in text:
        return CashFlowClass.ISA_TRANSFER_IN
    return CashFlowClass.OTHER


@dataclass(frozen=True)
class TradeRecord:
    ticker: Optional[str]
    transaction_type: TransactionType
    quantity: Decimal
    trade_time: datetime
    settlement_date: date
    total_value: Decimal
    raw_transaction_type: str = ""

    @property
    def trade_date(self) -> date:
        return self.trade_time.date()


@dataclass(frozen=True)
class CashFlowEvent:
    date: date
    net_amount: Decimal
    classification: CashFlowClass
    activity: str = ""

    @property
    def is_external(self) -> bool:
        return self.classification.is_external
