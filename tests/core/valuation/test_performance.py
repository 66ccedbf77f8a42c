from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

import pytest

from foliotrack.core.ledger.models import CashFlowClass, CashFlowEvent
from foliotrack.core.valuation.performance import (
    DAYS_PER_YEAR,
    compute_performance_summary,
    compute_twr,
    compute_xirr,
    twr_subperiod_returns,
)


def _npv(rate: float, dates: list[date], amounts: list[float]) -> float:
    start = min(dates)
    return sum(
        amount * (1.0 + rate) ** -((day - start).days / DAYS_PER_YEAR)
        for day, amount in zip(dates, amounts)
    )


def test_xirr_one_year_ten_percent() -> None:
    dates = [date(2023, 1, 1), date(2024, 1, 1)]
    amounts = [-1000.0, 1100.0]

    rate = compute_xirr(dates, amounts)

    assert rate == pytest.approx(0.10, abs=1e-4)
    assert abs(_npv(rate, dates, amounts)) < 1e-3


def test_xirr_handles_unsorted_multi_flow_input() -> None:
    dates = [date(2024, 1, 1), date(2022, 1, 1), date(2023, 1, 1)]
    amounts = [2300.0, -1000.0, -1000.0]

    rate = compute_xirr(dates, amounts)

    assert rate > 0
    assert abs(_npv(rate, dates, amounts)) < 1e-3


def test_xirr_needs_two_events() -> None:
    assert compute_xirr([date(2024, 1, 1)], [-100.0]) == 0.0
    assert compute_xirr([], []) == 0.0


def test_xirr_needs_a_sign_change() -> None:
    dates = [date(2023, 1, 1), date(2024, 1, 1)]

    assert compute_xirr(dates, [100.0, 50.0]) == 0.0
    assert compute_xirr(dates, [-100.0, -50.0]) == 0.0


def test_xirr_converges_on_a_loss() -> None:
    dates = [date(2023, 1, 1), date(2024, 1, 1)]

    rate = compute_xirr(dates, [-1000.0, 500.0])

    assert rate == pytest.approx(-0.5, abs=1e-2)


def test_twr_without_flows_is_single_period() -> None:
    start = date(2024, 1, 1)
    end = start + timedelta(days=100)

    returns = twr_subperiod_returns([start, end], [Decimal("100"), Decimal("200")], [], end)

    assert returns == [pytest.approx(1.0)]
    assert compute_twr([start, end], [Decimal("100"), Decimal("200")], [], end) == pytest.approx(
        2.0 ** (DAYS_PER_YEAR / 100) - 1.0
    )


def test_twr_removes_flow_from_closing_period() -> None:
    d0 = date(2024, 1, 1)
    d5 = d0 + timedelta(days=5)
    d10 = d0 + timedelta(days=10)
    dates = [d0, d5, d10]
    values = [Decimal("100"), Decimal("210"), Decimal("220")]
    flows = iter([(d5, Decimal("100"))])

    returns = twr_subperiod_returns(dates, values, flows, d10)

    assert returns == [pytest.approx(0.10), pytest.approx(220 / 210 - 1)]


def test_twr_skips_periods_starting_at_zero() -> None:
    d0 = date(2024, 1, 1)
    d1 = d0 + timedelta(days=1)
    d2 = d0 + timedelta(days=2)

    returns = twr_subperiod_returns(
        [d0, d1, d2],
        [Decimal(0), Decimal("100"), Decimal("110")],
        [(d1, Decimal("100"))],
        d2,
    )

    assert returns == [pytest.approx(0.10)]


def test_twr_accepts_a_generator_of_flows() -> None:
    d0 = date(2024, 1, 1)
    d5 = d0 + timedelta(days=5)
    d10 = d0 + timedelta(days=10)
    flows = ((day, amount) for day, amount in [(d5, Decimal("100"))])

    twr = compute_twr([d0, d5, d10], [Decimal("100"), Decimal("210"), Decimal("220")], flows, d10)

    growth = 1.10 * (220 / 210)
    assert twr == pytest.approx(growth ** (DAYS_PER_YEAR / 10) - 1.0)


def test_twr_needs_two_points() -> None:
    day = date(2024, 1, 1)

    assert compute_twr([day], [Decimal("100")], [], day) == 0.0


def test_summary_totals_and_return() -> None:
    flows = [
        CashFlowEvent(date(2024, 1, 1), Decimal("1000"), CashFlowClass.PAYMENT_RECEIVED),
        CashFlowEvent(date(2024, 6, 1), Decimal("-200"), CashFlowClass.WITHDRAWAL),
    ]

    summary = compute_performance_summary(flows, Decimal("1100"), date(2024, 12, 31))

    assert summary.total_invested == Decimal("1000")
    assert summary.total_withdrawn == Decimal("200")
    assert summary.current_value == Decimal("1100")
    assert summary.profit_loss == Decimal("300")
    assert summary.return_percentage == Decimal("0.3")
    assert summary.calc_date == date(2024, 12, 31)
    assert summary.irr > 0
    assert summary.twr == 0.0


def test_summary_without_flows_is_zeroed() -> None:
    summary = compute_performance_summary([], Decimal(0), date(2024, 12, 31))

    assert summary.irr == 0.0
    assert summary.return_percentage == Decimal(0)
    assert summary.profit_loss == Decimal(0)
