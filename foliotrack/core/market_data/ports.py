from __future__ import annotations

from datetime import date
from typing import Protocol

from foliotrack.core.market_data.models import PriceObservation


class HistoricalPricePort(Protocol):
    def get_historical_prices(
        self,
        ticker: str,
        start: date,
        end: date,
    ) -> list[PriceObservation]:
        """Return daily closes for the ticker between start and end, oldest first.

        Implementations raise FetchError when the provider cannot serve the ticker.
        """
        raise NotImplementedError
