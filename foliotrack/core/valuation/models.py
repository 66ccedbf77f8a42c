from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class RunStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class ConvertedPrice:
    ticker: str
    date: date
    original_currency: str
    original_price: Decimal
    converted_price: Decimal


@dataclass(frozen=True)
class DailyValuation:
    date: date
    ticker_values: dict[str, Decimal]
    total_value: Decimal
    invested_value: Decimal = Decimal(0)


@dataclass(frozen=True)
class TickerDailyValue:
    date: date
    ticker: str
    value: Decimal


@dataclass(frozen=True)
class MonthlyContribution:
    month: str
    net_value: Decimal


@dataclass(frozen=True)
class PerformanceSummary:
    irr: float
    twr: float
    total_invested: Decimal
    total_withdrawn: Decimal
    current_value: Decimal
    profit_loss: Decimal
    return_percentage: Decimal
    calc_date: date


@dataclass(frozen=True)
class PrecomputeRun:
    run_id: int
    status: RunStatus
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    last_error: Optional[str] = None
    total_tickers: Optional[int] = None


@dataclass(frozen=True)
class DerivedSeriesSnapshot:
    """Everything one run writes; replaces whatever the store held before."""

    ticker_prices: list[ConvertedPrice] = field(default_factory=list)
    daily_valuations: list[DailyValuation] = field(default_factory=list)
    monthly_contributions: list[MonthlyContribution] = field(default_factory=list)
    summary: Optional[PerformanceSummary] = None


@dataclass(frozen=True)
class PortfolioOverview:
    dates: list[date]
    values: list[Decimal]
    invested: list[Decimal]
    ticker_values: dict[str, list[Decimal]]
    monthly_contributions: list[MonthlyContribution]
    summary: Optional[PerformanceSummary]
    status: Optional[PrecomputeRun]
    stale: bool
