from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Iterable, Mapping, Sequence

from foliotrack.core.ledger.models import TradeRecord, TransactionType

_ZERO = Decimal(0)


class HoldingsSeries:
    def __init__(self, snapshots: dict[date, dict[str, Decimal]]) -> None:
        self._snapshots = snapshots

    @property
    def dates(self) -> list[date]:
        return list(self._snapshots)

    def snapshot(self, on: date) -> Mapping[str, Decimal]:
        return self._snapshots.get(on, {})

    def shares(self, on: date, ticker: str) -> Decimal:
        return self._snapshots.get(on, {}).get(ticker, _ZERO)


class HoldingsSimulator:
    """Replay a trade ledger into end-of-day share counts."""

    def __init__(self, trades: Iterable[TradeRecord]) -> None:
        self._trades = sorted(trades, key=lambda trade: trade.trade_time)

    def replay(self, dates: Sequence[date]) -> HoldingsSeries:
        _validate_ascending(dates)

        balances: dict[str, Decimal] = {}
        snapshots: dict[date, dict[str, Decimal]] = {}
        trades = self._trades
        idx = 0
        for current in dates:
            while idx < len(trades) and trades[idx].trade_date <= current:
                _apply(balances, trades[idx])
                idx += 1
            snapshots[current] = dict(balances)
        return HoldingsSeries(snapshots)


def _apply(balances: dict[str, Decimal], trade: TradeRecord) -> None:
    if not trade.ticker:
        return
    if trade.transaction_type.adds_shares:
        balances[trade.ticker] = balances.get(trade.ticker, _ZERO) + trade.quantity
    elif trade.transaction_type == TransactionType.SELL:
        balances[trade.ticker] = balances.get(trade.ticker, _ZERO) - trade.quantity


def _validate_ascending(dates: Sequence[date]) -> None:
    for idx in range(1, len(dates)):
        if dates[idx] <= dates[idx - 1]:
            raise ValueError("dates must be strictly ascending")
