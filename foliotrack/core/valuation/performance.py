from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from foliotrack.core.ledger.models import CashFlowEvent
from foliotrack.core.valuation.models import PerformanceSummary

DAYS_PER_YEAR = 365.25

_ZERO = Decimal(0)


@dataclass(frozen=True)
class XirrConfig:
    guess: float = 0.1
    max_iterations: int = 100
    tolerance: float = 1e-6
    min_derivative: float = 1e-9
    floor_rate: float = -0.99


def compute_xirr(
    dates: Sequence[date],
    amounts: Sequence[float],
    *,
    config: XirrConfig | None = None,
) -> float:
    """
    Annualized money-weighted return for irregular cash flows.

    Solves sum(cf * (1 + r) ** -t) = 0 with t in years of 365.25 days from
    the earliest flow, using Newton-Raphson on the analytic derivative.
    Returns 0.0 when there is no sign change to guarantee a root.
    """
    if len(dates) != len(amounts) or len(dates) < 2:
        return 0.0

    cfg = config or XirrConfig()
    flows = sorted(zip(dates, amounts), key=lambda item: item[0])
    start = flows[0][0]
    years = [(flow_date - start).days / DAYS_PER_YEAR for flow_date, _ in flows]
    values = [amount for _, amount in flows]

    if not any(value > 0 for value in values) or not any(value < 0 for value in values):
        return 0.0

    rate = cfg.guess
    for _ in range(cfg.max_iterations):
        if rate <= -1.0:
            rate = cfg.floor_rate

        base = 1.0 + rate
        f_val = 0.0
        df_val = 0.0
        for value, t in zip(values, years):
            factor = base ** -t
            f_val += value * factor
            df_val += value * -t * factor / base

        if abs(f_val) < cfg.tolerance:
            return rate
        if abs(df_val) < cfg.min_derivative:
            break

        new_rate = rate - f_val / df_val
        if abs(new_rate - rate) < cfg.tolerance:
            return new_rate
        rate = new_rate

    return rate


def twr_subperiod_returns(
    daily_dates: Sequence[date],
    daily_values: Sequence[Decimal],
    flows: Iterable[tuple[date, Decimal]],
    valuation_date: date,
) -> list[float]:
    if not daily_dates or len(daily_dates) != len(daily_values):
        return []

    value_by_date = dict(zip(daily_dates, daily_values))
    flow_by_date = _net_flows_by_date(flows)
    periods = _break_dates(value_by_date, flow_by_date, min(daily_dates), valuation_date)

    returns: list[float] = []
    for period_start, period_end in zip(periods, periods[1:]):
        start_value = value_by_date[period_start]
        if start_value.is_zero():
            continue
        end_value = value_by_date[period_end] - flow_by_date.get(period_end, _ZERO)
        returns.append(float(end_value / start_value) - 1.0)
    return returns


def compute_twr(
    daily_dates: Sequence[date],
    daily_values: Sequence[Decimal],
    flows: Iterable[tuple[date, Decimal]],
    valuation_date: date,
) -> float:
    """
    Annualized time-weighted return, chain-linked across external flows.

    Flows are assumed to land at the end of the sub-period they close.
    """
    if len(daily_dates) < 2 or len(daily_dates) != len(daily_values):
        return 0.0

    flow_list = list(flows)
    start = min(daily_dates)
    value_by_date = dict(zip(daily_dates, daily_values))
    periods = _break_dates(value_by_date, _net_flows_by_date(flow_list), start, valuation_date)
    if len(periods) < 2:
        return 0.0

    growth = 1.0
    for period_return in twr_subperiod_returns(daily_dates, daily_values, flow_list, valuation_date):
        growth *= 1.0 + period_return

    days = (valuation_date - start).days
    if days <= 0 or growth <= 0:
        return 0.0
    return growth ** (DAYS_PER_YEAR / days) - 1.0


def _net_flows_by_date(flows: Iterable[tuple[date, Decimal]]) -> dict[date, Decimal]:
    by_date: dict[date, Decimal] = {}
    for flow_date, amount in flows:
        by_date[flow_date] = by_date.get(flow_date, _ZERO) + amount
    return by_date


def _break_dates(
    value_by_date: dict[date, Decimal],
    flow_by_date: dict[date, Decimal],
    start: date,
    valuation_date: date,
) -> list[date]:
    breaks = {start, valuation_date}
    breaks.update(flow_date for flow_date, amount in flow_by_date.items() if not amount.is_zero())
    return sorted(day for day in breaks if day in value_by_date)


def compute_performance_summary(
    external_flows: Sequence[CashFlowEvent],
    current_value: Decimal,
    valuation_date: date,
    daily_series: Optional[tuple[Sequence[date], Sequence[Decimal]]] = None,
) -> PerformanceSummary:
    total_invested = _ZERO
    total_withdrawn = _ZERO
    xirr_dates: list[date] = []
    xirr_amounts: list[float] = []
    twr_flows: list[tuple[date, Decimal]] = []

    for event in external_flows:
        if event.net_amount > 0:
            total_invested += event.net_amount
        else:
            total_withdrawn += abs(event.net_amount)
        # Money into the portfolio is money out of the investor's pocket.
        xirr_dates.append(event.date)
        xirr_amounts.append(-float(event.net_amount))
        twr_flows.append((event.date, event.net_amount))

    xirr_dates.append(valuation_date)
    xirr_amounts.append(float(current_value))
    irr = compute_xirr(xirr_dates, xirr_amounts)

    twr = 0.0
    if daily_series is not None:
        daily_dates, daily_values = daily_series
        twr = compute_twr(daily_dates, daily_values, twr_flows, valuation_date)

    profit_loss = current_value + total_withdrawn - total_invested
    if total_invested.is_zero():
        return_percentage = _ZERO
    else:
        return_percentage = profit_loss / total_invested

    return PerformanceSummary(
        irr=irr,
        twr=twr,
        total_invested=total_invested,
        total_withdrawn=total_withdrawn,
        current_value=current_value,
        profit_loss=profit_loss,
        return_percentage=return_percentage,
        calc_date=valuation_date,
    )
