from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from foliotrack.core.market_data.ports import HistoricalPricePort
from foliotrack.core.valuation.config import ValuationConfig
from foliotrack.core.valuation.errors import FetchError

logger = logging.getLogger(__name__)

_ZERO = Decimal(0)
_ONE_DAY = timedelta(days=1)


class PriceSeriesResolver:
    """
    Sparse per-ticker price map with bounded gap filling.

    ``resolve`` looks backward first ("last known price") and only then
    forward, which covers tickers whose history starts after the grid does.
    Nothing outside either window is ever returned; the result is zero.
    """

    def __init__(
        self,
        provider: HistoricalPricePort,
        config: Optional[ValuationConfig] = None,
    ) -> None:
        self._provider = provider
        self._config = config or ValuationConfig()
        self._prices: dict[str, dict[date, Decimal]] = {}
        self._currencies: dict[str, str] = {}
        self._fetched: set[str] = set()
        self._start: Optional[date] = None
        self._end: Optional[date] = None

    def load(self, tickers: Iterable[str], start: date, end: date) -> None:
        self._start = start
        self._end = end
        for ticker in tickers:
            self._fetch(ticker)

    def currency_for(self, ticker: str) -> str:
        return self._currencies.get(ticker, self._config.base_currency)

    def resolve(self, ticker: str, on: date) -> Decimal:
        series = self._prices.get(ticker)
        if not series:
            return _ZERO

        check = on
        for _ in range(self._config.fallback_back_days):
            price = series.get(check)
            if price is not None and not price.is_zero():
                return price
            check -= _ONE_DAY

        check = on
        for _ in range(self._config.fallback_forward_days):
            price = series.get(check)
            if price is not None and not price.is_zero():
                return price
            check += _ONE_DAY

        return _ZERO

    def fx_rate(self, fx_ticker: str, on: date) -> Optional[Decimal]:
        if fx_ticker not in self._fetched:
            self._fetch(fx_ticker)
        rate = self.resolve(fx_ticker, on)
        if rate.is_zero():
            return None
        return rate

    def _fetch(self, ticker: str) -> None:
        if ticker in self._fetched:
            return
        if self._start is None or self._end is None:
            raise RuntimeError("load() must be called before prices can be fetched")
        self._fetched.add(ticker)

        logger.info("Fetching prices for %s from %s to %s", ticker, self._start, self._end)
        try:
            observations = self._provider.get_historical_prices(ticker, self._start, self._end)
        except FetchError as exc:
            logger.error("%s", exc)
            self._prices[ticker] = {}
            return

        series: dict[date, Decimal] = {}
        for observation in observations:
            series[observation.date] = observation.price
            if observation.currency:
                self._currencies[ticker] = observation.currency
        self._prices[ticker] = series
        logger.info("Fetched %d prices for %s", len(series), ticker)
