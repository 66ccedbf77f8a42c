from __future__ import annotations

from typing import Protocol

from foliotrack.core.ledger.models import CashFlowEvent, TradeRecord


class TradeLedger(Protocol):
    def load_trades(self) -> list[TradeRecord]:
        """Return every trade in the ledger."""
        raise NotImplementedError


class CashFlowLedger(Protocol):
    def load_cash_flows(self) -> list[CashFlowEvent]:
        """Return every cash-flow event, unfiltered."""
        raise NotImplementedError

    def load_external_cash_flows(self) -> list[CashFlowEvent]:
        """Return external transfers only, ordered by date."""
        raise NotImplementedError
