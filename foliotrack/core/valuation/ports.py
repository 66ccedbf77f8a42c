from __future__ import annotations

from typing import Callable, Optional, Protocol, TypeVar

from foliotrack.core.valuation.models import (
    ConvertedPrice,
    DailyValuation,
    DerivedSeriesSnapshot,
    MonthlyContribution,
    PerformanceSummary,
    PrecomputeRun,
    RunStatus,
    TickerDailyValue,
)

EventT = TypeVar("EventT")
EventHandler = Callable[[EventT], None]


class DerivedSeriesStore(Protocol):
    def start_run(self) -> PrecomputeRun:
        """Append a new in-progress run row and return it."""
        raise NotImplementedError

    def finish_run(
        self,
        run_id: int,
        status: RunStatus,
        error: Optional[str] = None,
        total_tickers: Optional[int] = None,
    ) -> None:
        """Move the given run row to a terminal status."""
        raise NotImplementedError

    def latest_run(self) -> Optional[PrecomputeRun]:
        """Return the most recently started run, if any."""
        raise NotImplementedError

    def replace_derived_series(self, snapshot: DerivedSeriesSnapshot) -> None:
        """Clear every derived series and write the snapshot as one transaction."""
        raise NotImplementedError

    def fetch_ticker_prices(self) -> list[ConvertedPrice]:
        raise NotImplementedError

    def fetch_portfolio_values(self) -> list[DailyValuation]:
        """Return total and invested values per date; ticker_values is left empty."""
        raise NotImplementedError

    def fetch_ticker_daily_values(self) -> list[TickerDailyValue]:
        raise NotImplementedError

    def fetch_monthly_contributions(self) -> list[MonthlyContribution]:
        raise NotImplementedError

    def fetch_performance_summary(self) -> Optional[PerformanceSummary]:
        raise NotImplementedError


class EventBus(Protocol):
    def publish(self, event: object) -> None:
        """Publish an event to subscribers."""
        raise NotImplementedError

    def subscribe(self, event_type: type[EventT], handler: EventHandler[EventT]) -> Callable[[], None]:
        """Subscribe a handler to events of a given type."""
        raise NotImplementedError
