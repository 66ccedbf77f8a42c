"""Portfolio valuation and performance pipeline."""

from foliotrack.core.valuation.config import FxRule, ValuationConfig
from foliotrack.core.valuation.currency import CurrencyNormalizer
from foliotrack.core.valuation.engine import (
    ConvertedPriceTable,
    ValuationEngine,
    invested_series,
    monthly_contributions,
)
from foliotrack.core.valuation.errors import (
    ConversionError,
    FetchError,
    MalformedInputError,
    PersistenceError,
    ValuationError,
)
from foliotrack.core.valuation.holdings import HoldingsSeries, HoldingsSimulator
from foliotrack.core.valuation.models import (
    ConvertedPrice,
    DailyValuation,
    DerivedSeriesSnapshot,
    MonthlyContribution,
    PerformanceSummary,
    PortfolioOverview,
    PrecomputeRun,
    RunStatus,
    TickerDailyValue,
)
from foliotrack.core.valuation.performance import (
    compute_performance_summary,
    compute_twr,
    compute_xirr,
    twr_subperiod_returns,
)
from foliotrack.core.valuation.prices import PriceSeriesResolver
from foliotrack.core.valuation.service import PrecomputeService, is_stale

__all__ = [
    "ConversionError",
    "ConvertedPrice",
    "ConvertedPriceTable",
    "CurrencyNormalizer",
    "DailyValuation",
    "DerivedSeriesSnapshot",
    "FetchError",
    "FxRule",
    "HoldingsSeries",
    "HoldingsSimulator",
    "MalformedInputError",
    "MonthlyContribution",
    "PerformanceSummary",
    "PersistenceError",
    "PortfolioOverview",
    "PrecomputeRun",
    "PrecomputeService",
    "PriceSeriesResolver",
    "RunStatus",
    "TickerDailyValue",
    "ValuationConfig",
    "ValuationEngine",
    "ValuationError",
    "compute_performance_summary",
    "compute_twr",
    "compute_xirr",
    "invested_series",
    "is_stale",
    "monthly_contributions",
    "twr_subperiod_returns",
]
