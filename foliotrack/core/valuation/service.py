from __future__ import annotations

import dataclasses
import logging
import threading
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Optional

from foliotrack.core.ledger.models import CashFlowEvent, TradeRecord
from foliotrack.core.ledger.ports import CashFlowLedger, TradeLedger
from foliotrack.core.market_data.ports import HistoricalPricePort
from foliotrack.core.valuation.config import ValuationConfig
from foliotrack.core.valuation.currency import CurrencyNormalizer
from foliotrack.core.valuation.engine import (
    ValuationEngine,
    invested_series,
    monthly_contributions,
)
from foliotrack.core.valuation.errors import PersistenceError
from foliotrack.core.valuation.events import (
    PrecomputeFailed,
    PrecomputeFinished,
    PrecomputeStarted,
)
from foliotrack.core.valuation.holdings import HoldingsSimulator
from foliotrack.core.valuation.models import (
    ConvertedPrice,
    DerivedSeriesSnapshot,
    PerformanceSummary,
    PortfolioOverview,
    PrecomputeRun,
    RunStatus,
)
from foliotrack.core.valuation.performance import compute_performance_summary
from foliotrack.core.valuation.ports import DerivedSeriesStore, EventBus
from foliotrack.core.valuation.prices import PriceSeriesResolver

logger = logging.getLogger(__name__)

_ZERO = Decimal(0)


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


@dataclass(frozen=True)
class _RunResult:
    snapshot: DerivedSeriesSnapshot
    tickers: int
    dates: list[date]


class PrecomputeService:
    """
    Rebuilds every derived portfolio series from the ledgers.

    A run discovers tickers and the date range from the ledgers, resolves
    and converts prices, replays holdings, values them and derives the
    performance summary, then swaps the stored series in one step.
    """

    def __init__(
        self,
        trades: TradeLedger,
        cash_flows: CashFlowLedger,
        prices: HistoricalPricePort,
        store: DerivedSeriesStore,
        *,
        config: Optional[ValuationConfig] = None,
        event_bus: Optional[EventBus] = None,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        self._trades = trades
        self._cash_flows = cash_flows
        self._prices = prices
        self._store = store
        self._config = config or ValuationConfig()
        self._event_bus = event_bus
        self._today = today or _utc_today
        self._lock = threading.Lock()
        self._worker: Optional[threading.Thread] = None

    def run(self) -> PrecomputeRun:
        run = self._store.start_run()
        logger.info("Starting precomputation (run_id=%s)", run.run_id)
        self._publish(PrecomputeStarted.now(run.run_id))
        try:
            result = self._compute()
            self._store.replace_derived_series(result.snapshot)
            self._store.finish_run(run.run_id, RunStatus.COMPLETED, total_tickers=result.tickers)
        except Exception as exc:
            logger.exception("Precomputation failed (run_id=%s)", run.run_id)
            self._record_failure(run.run_id, exc)
            raise

        current_value = result.snapshot.summary.current_value if result.snapshot.summary else _ZERO
        logger.info(
            "Precomputation completed (run_id=%s tickers=%d days=%d)",
            run.run_id,
            result.tickers,
            len(result.dates),
        )
        self._publish(
            PrecomputeFinished.now(
                run.run_id,
                tickers=result.tickers,
                days=len(result.dates),
                start_date=result.dates[0] if result.dates else None,
                end_date=result.dates[-1] if result.dates else None,
                current_value=current_value,
            )
        )
        return dataclasses.replace(
            run,
            status=RunStatus.COMPLETED,
            completed_at=datetime.now(timezone.utc),
            total_tickers=result.tickers,
        )

    def trigger(self) -> bool:
        """Start a background run unless one is already running in this process."""
        with self._lock:
            if self._worker is not None and self._worker.is_alive():
                logger.info("Precomputation already in flight; trigger ignored")
                return False
            self._worker = threading.Thread(
                target=self._run_in_background,
                name="foliotrack-precompute",
                daemon=True,
            )
            self._worker.start()
            return True

    def wait(self, timeout: Optional[float] = None) -> None:
        worker = self._worker
        if worker is not None:
            worker.join(timeout)

    def run_is_stale(self, run: Optional[PrecomputeRun]) -> bool:
        return is_stale(run, self._today())

    def get_status(self) -> Optional[PrecomputeRun]:
        return self._store.latest_run()

    def get_ticker_prices(self) -> list[ConvertedPrice]:
        return self._store.fetch_ticker_prices()

    def get_summary(self) -> Optional[PerformanceSummary]:
        return self._store.fetch_performance_summary()

    def get_overview(self) -> Optional[PortfolioOverview]:
        values = self._store.fetch_portfolio_values()
        if not values:
            return None

        ticker_values: dict[str, list[Decimal]] = {}
        for row in sorted(self._store.fetch_ticker_daily_values(), key=lambda r: (r.date, r.ticker)):
            ticker_values.setdefault(row.ticker, []).append(row.value)

        status = self._store.latest_run()
        return PortfolioOverview(
            dates=[row.date for row in values],
            values=[row.total_value for row in values],
            invested=[row.invested_value for row in values],
            ticker_values=ticker_values,
            monthly_contributions=self._store.fetch_monthly_contributions(),
            summary=self._store.fetch_performance_summary(),
            status=status,
            stale=is_stale(status, self._today()),
        )

    def _run_in_background(self) -> None:
        try:
            self.run()
        except Exception:
            logger.error("Background precomputation failed", exc_info=True)

    def _compute(self) -> _RunResult:
        trades = self._trades.load_trades()
        external_flows = self._cash_flows.load_external_cash_flows()
        if not trades:
            logger.info("Trade ledger is empty; clearing derived series")
            return _RunResult(snapshot=DerivedSeriesSnapshot(), tickers=0, dates=[])

        all_flows = self._cash_flows.load_cash_flows()
        tickers = sorted({trade.ticker for trade in trades if trade.ticker})
        end = self._today()
        start = _earliest_date(trades, external_flows) - timedelta(days=self._config.lookback_buffer_days)
        dates = _date_grid(start, end)
        logger.info("Valuing %d tickers over %d days (%s to %s)", len(tickers), len(dates), start, end)

        resolver = PriceSeriesResolver(self._prices, self._config)
        resolver.load(tickers, start, end)
        engine = ValuationEngine(resolver, CurrencyNormalizer(self._config))
        prices = engine.converted_prices(tickers, dates)

        holdings = HoldingsSimulator(trades).replay(dates)
        valuations = engine.daily_valuations(
            dates,
            tickers,
            holdings,
            prices,
            invested=invested_series(dates, external_flows),
        )
        current_value = valuations[-1].total_value if valuations else _ZERO
        summary = compute_performance_summary(
            external_flows,
            current_value,
            end,
            daily_series=(
                [row.date for row in valuations],
                [row.total_value for row in valuations],
            ),
        )

        snapshot = DerivedSeriesSnapshot(
            ticker_prices=prices.rows,
            daily_valuations=valuations,
            monthly_contributions=monthly_contributions(trades, all_flows),
            summary=summary,
        )
        return _RunResult(snapshot=snapshot, tickers=len(tickers), dates=dates)

    def _record_failure(self, run_id: int, exc: Exception) -> None:
        try:
            self._store.finish_run(run_id, RunStatus.FAILED, error=str(exc))
        except PersistenceError:
            logger.error("Could not mark run %s as failed", run_id, exc_info=True)
        self._publish(PrecomputeFailed.now(run_id, str(exc)))

    def _publish(self, event: object) -> None:
        if self._event_bus:
            self._event_bus.publish(event)


def is_stale(run: Optional[PrecomputeRun], today: date) -> bool:
    if run is None or run.status != RunStatus.COMPLETED:
        return True
    if run.completed_at is None:
        return True
    return run.completed_at.astimezone(timezone.utc).date() != today


def _earliest_date(trades: list[TradeRecord], external_flows: list[CashFlowEvent]) -> date:
    earliest = min(trade.trade_date for trade in trades)
    for event in external_flows:
        if event.date < earliest:
            earliest = event.date
    return earliest


def _date_grid(start: date, end: date) -> list[date]:
    days = (end - start).days
    return [start + timedelta(days=offset) for offset in range(days + 1)]
