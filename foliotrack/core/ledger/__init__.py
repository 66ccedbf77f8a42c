"""Trade and cash-flow ledger types."""

from foliotrack.core.ledger.models import (
    CashFlowClass,
    CashFlowEvent,
    TradeRecord,
    TransactionType,
    classify_cash_activity,
    classify_transaction_type,
)
from foliotrack.core.ledger.ports import CashFlowLedger, TradeLedger

__all__ = [
    "CashFlowClass",
    "CashFlowEvent",
    "CashFlowLedger",
    "TradeLedger",
    "TradeRecord",
    "TransactionType",
    "classify_cash_activity",
    "classify_transaction_type",
]
