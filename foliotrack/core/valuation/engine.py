from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, Mapping, Sequence

from foliotrack.core.ledger.models import CashFlowEvent, TradeRecord, TransactionType
from foliotrack.core.valuation.currency import CurrencyNormalizer
from foliotrack.core.valuation.errors import ConversionError
from foliotrack.core.valuation.holdings import HoldingsSeries
from foliotrack.core.valuation.models import (
    ConvertedPrice,
    DailyValuation,
    MonthlyContribution,
)
from foliotrack.core.valuation.prices import PriceSeriesResolver

logger = logging.getLogger(__name__)

_ZERO = Decimal(0)


@dataclass
class ConvertedPriceTable:
    prices: dict[str, dict[date, Decimal]] = field(default_factory=dict)
    rows: list[ConvertedPrice] = field(default_factory=list)

    def price(self, ticker: str, on: date) -> Decimal:
        return self.prices.get(ticker, {}).get(on, _ZERO)


class ValuationEngine:
    def __init__(self, resolver: PriceSeriesResolver, normalizer: CurrencyNormalizer) -> None:
        self._resolver = resolver
        self._normalizer = normalizer

    def converted_prices(self, tickers: Sequence[str], dates: Sequence[date]) -> ConvertedPriceTable:
        table = ConvertedPriceTable()
        for ticker in tickers:
            currency = self._resolver.currency_for(ticker)
            fx_ticker = self._normalizer.fx_ticker(currency)
            series: dict[date, Decimal] = {}
            for current in dates:
                price = self._resolver.resolve(ticker, current)
                fx_rate = self._resolver.fx_rate(fx_ticker, current) if fx_ticker else None
                try:
                    converted = self._normalizer.convert(price, currency, current, fx_rate)
                except ConversionError as exc:
                    if not price.is_zero():
                        logger.error(
                            "Conversion failed for %s on %s: %s. Using raw price.",
                            ticker,
                            current,
                            exc,
                        )
                    converted = price
                series[current] = converted
                if not price.is_zero():
                    table.rows.append(
                        ConvertedPrice(
                            ticker=ticker,
                            date=current,
                            original_currency=currency,
                            original_price=price,
                            converted_price=converted,
                        )
                    )
            table.prices[ticker] = series
        return table

    @staticmethod
    def daily_valuations(
        dates: Sequence[date],
        tickers: Sequence[str],
        holdings: HoldingsSeries,
        prices: ConvertedPriceTable,
        invested: Mapping[date, Decimal] | None = None,
    ) -> list[DailyValuation]:
        valuations: list[DailyValuation] = []
        for current in dates:
            ticker_values: dict[str, Decimal] = {}
            total = _ZERO
            for ticker in tickers:
                value = holdings.shares(current, ticker) * prices.price(ticker, current)
                ticker_values[ticker] = value
                total += value
            valuations.append(
                DailyValuation(
                    date=current,
                    ticker_values=ticker_values,
                    total_value=total,
                    invested_value=(invested or {}).get(current, _ZERO),
                )
            )
        return valuations


def monthly_contributions(
    trades: Iterable[TradeRecord],
    cash_flows: Iterable[CashFlowEvent],
) -> list[MonthlyContribution]:
    """
    Net money put to work per calendar month.

    Buys add their notional and sells subtract it, keyed by trade month;
    external transfers add their signed amount keyed by their own month.
    """
    buckets: dict[str, Decimal] = {}
    for trade in trades:
        month = trade.trade_time.strftime("%Y-%m")
        entry = buckets.get(month, _ZERO)
        if trade.transaction_type == TransactionType.BUY:
            entry += trade.total_value
        elif trade.transaction_type == TransactionType.SELL:
            entry -= trade.total_value
        buckets[month] = entry
    for event in cash_flows:
        if not event.is_external:
            continue
        month = event.date.strftime("%Y-%m")
        buckets[month] = buckets.get(month, _ZERO) + event.net_amount
    return [MonthlyContribution(month=month, net_value=buckets[month]) for month in sorted(buckets)]


def invested_series(
    dates: Sequence[date],
    external_flows: Iterable[CashFlowEvent],
) -> dict[date, Decimal]:
    ordered = sorted(external_flows, key=lambda event: event.date)
    running = _ZERO
    idx = 0
    series: dict[date, Decimal] = {}
    for current in dates:
        while idx < len(ordered) and ordered[idx].date <= current:
            running += ordered[idx].net_amount
            idx += 1
        series[current] = running
    return series
