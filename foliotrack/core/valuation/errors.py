from __future__ import annotations


class ValuationError(Exception):
    """Base class for valuation pipeline failures."""


class FetchError(ValuationError):
    """The market-data provider could not serve a ticker."""

    def __init__(self, ticker: str, reason: str) -> None:
        super().__init__(f"Failed to fetch prices for {ticker}: {reason}")
        self.ticker = ticker
        self.reason = reason


class ConversionError(ValuationError):
    """A price could not be normalized into the base currency."""


class PersistenceError(ValuationError):
    """A derived-series store read or write failed."""


class MalformedInputError(ValuationError):
    """A ledger row could not be turned into a ledger record."""
