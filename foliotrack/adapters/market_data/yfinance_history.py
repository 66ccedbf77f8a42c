from __future__ import annotations

import logging
import math
import os
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation

import pandas as pd
import yfinance as yf

from foliotrack.core.market_data.models import PriceObservation
from foliotrack.core.market_data.ports import HistoricalPricePort
from foliotrack.core.valuation.errors import FetchError

logger = logging.getLogger(__name__)

_PENCE_THRESHOLD = Decimal(250)


class YFinancePriceHistory(HistoricalPricePort):
    def __init__(self, *, timeout: float | None = None, default_currency: str = "GBP") -> None:
        self._timeout = timeout if timeout is not None else float(os.getenv("PRICE_FETCH_TIMEOUT", "10"))
        self._default_currency = default_currency

    def get_historical_prices(self, ticker: str, start: date, end: date) -> list[PriceObservation]:
        if end < start:
            raise ValueError("end must be on or after start for historical prices")
        try:
            handle = yf.Ticker(ticker)
            frame = handle.history(
                start=start.isoformat(),
                # yfinance treats end as exclusive
                end=(end + timedelta(days=1)).isoformat(),
                interval="1d",
                auto_adjust=False,
                timeout=self._timeout,
            )
            metadata = getattr(handle, "history_metadata", None) or {}
        except Exception as exc:
            raise FetchError(ticker, str(exc)) from exc

        currency = str(metadata.get("currency") or self._default_currency)
        observations = observations_from_history(frame, ticker, currency, start, end)
        if observations:
            logger.info(
                "Found %d prices for %s (first=%s last=%s)",
                len(observations),
                ticker,
                observations[0].date,
                observations[-1].date,
            )
        else:
            logger.warning("No prices found for %s between %s and %s", ticker, start, end)
        return observations


def observations_from_history(
    frame: pd.DataFrame,
    ticker: str,
    currency: str,
    start: date,
    end: date,
) -> list[PriceObservation]:
    """Turn a daily history frame into ordered close observations within [start, end]."""
    if frame is None or frame.empty or "Close" not in frame.columns:
        return []

    observations: list[PriceObservation] = []
    for stamp, close in frame["Close"].sort_index().items():
        day = pd.Timestamp(stamp).date()
        if day < start or day > end:
            continue
        if close is None or (isinstance(close, float) and math.isnan(close)):
            continue
        try:
            price = Decimal(str(close))
        except InvalidOperation:
            logger.error("Failed to parse close %r for %s on %s", close, ticker, day)
            continue
        # LSE listings frequently quote pence while labelled GBP.
        if ticker.endswith(".L") and currency == "GBP" and price > _PENCE_THRESHOLD:
            price = price / 100
        observations.append(PriceObservation(date=day, price=price, currency=currency))
    return observations
