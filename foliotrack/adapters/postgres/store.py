from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

import psycopg

from foliotrack.adapters.postgres.db import DERIVED_SERIES_LOCK_KEY, get_conn
from foliotrack.core.valuation.errors import PersistenceError
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

logger = logging.getLogger(__name__)

_DERIVED_TABLES = (
    "precomputed_ticker_prices",
    "precomputed_portfolio_values",
    "precomputed_ticker_daily_values",
    "precomputed_monthly_contributions",
    "precomputed_portfolio_metrics",
)


class PostgresDerivedSeriesStore:
    def start_run(self) -> PrecomputeRun:
        sql = """
        INSERT INTO precompute_status (status)
        VALUES (%s)
        RETURNING id, status, started_at, completed_at, last_error, total_tickers;
        """
        try:
            with get_conn() as conn:
                with conn.cursor() as cur:
                    cur.execute(sql, (RunStatus.IN_PROGRESS.value,))
                    row = cur.fetchone()
                conn.commit()
        except psycopg.Error as exc:
            raise PersistenceError(f"Failed to record run start: {exc}") from exc
        return _run_from_row(row)

    def finish_run(
        self,
        run_id: int,
        status: RunStatus,
        error: Optional[str] = None,
        total_tickers: Optional[int] = None,
    ) -> None:
        sql = """
        UPDATE precompute_status
        SET status = %s,
            completed_at = CASE WHEN %s THEN NOW() ELSE completed_at END,
            last_error = %s,
            total_tickers = COALESCE(%s, total_tickers)
        WHERE id = %s;
        """
        completed = status == RunStatus.COMPLETED
        try:
            with get_conn() as conn:
                with conn.cursor() as cur:
                    cur.execute(sql, (status.value, completed, error, total_tickers, run_id))
                conn.commit()
        except psycopg.Error as exc:
            raise PersistenceError(f"Failed to update run {run_id}: {exc}") from exc

    def latest_run(self) -> Optional[PrecomputeRun]:
        sql = """
        SELECT id, status, started_at, completed_at, last_error, total_tickers
        FROM precompute_status
        ORDER BY id DESC
        LIMIT 1
        """
        row = self._fetch(sql)
        return _run_from_row(row[0]) if row else None

    def replace_derived_series(self, snapshot: DerivedSeriesSnapshot) -> None:
        try:
            with get_conn() as conn:
                with conn.transaction():
                    with conn.cursor() as cur:
                        cur.execute("SELECT pg_advisory_xact_lock(%s)", (DERIVED_SERIES_LOCK_KEY,))
                        for table in _DERIVED_TABLES:
                            cur.execute(f"DELETE FROM {table}")
                        _write_snapshot(cur, snapshot)
        except psycopg.Error as exc:
            raise PersistenceError(f"Failed to replace derived series: {exc}") from exc
        logger.info(
            "Derived series replaced prices=%d days=%d months=%d",
            len(snapshot.ticker_prices),
            len(snapshot.daily_valuations),
            len(snapshot.monthly_contributions),
        )

    def fetch_ticker_prices(self) -> list[ConvertedPrice]:
        rows = self._fetch(
            """
            SELECT ticker, date, original_currency, original_price, converted_price
            FROM precomputed_ticker_prices
            ORDER BY ticker, date
            """
        )
        return [
            ConvertedPrice(
                ticker=ticker,
                date=day,
                original_currency=currency,
                original_price=Decimal(original),
                converted_price=Decimal(converted),
            )
            for ticker, day, currency, original, converted in rows
        ]

    def fetch_portfolio_values(self) -> list[DailyValuation]:
        rows = self._fetch(
            """
            SELECT date, daily_value, invested_value
            FROM precomputed_portfolio_values
            ORDER BY date
            """
        )
        return [
            DailyValuation(
                date=day,
                ticker_values={},
                total_value=Decimal(value),
                invested_value=Decimal(invested),
            )
            for day, value, invested in rows
        ]

    def fetch_ticker_daily_values(self) -> list[TickerDailyValue]:
        rows = self._fetch(
            """
            SELECT date, ticker, daily_value
            FROM precomputed_ticker_daily_values
            ORDER BY date, ticker
            """
        )
        return [TickerDailyValue(date=day, ticker=ticker, value=Decimal(value)) for day, ticker, value in rows]

    def fetch_monthly_contributions(self) -> list[MonthlyContribution]:
        rows = self._fetch(
            """
            SELECT month, net_value
            FROM precomputed_monthly_contributions
            ORDER BY month
            """
        )
        return [MonthlyContribution(month=month, net_value=Decimal(value)) for month, value in rows]

    def fetch_performance_summary(self) -> Optional[PerformanceSummary]:
        rows = self._fetch(
            """
            SELECT irr, twr, total_invested, total_withdrawn, current_value,
                   profit_loss, return_percentage, calc_date
            FROM precomputed_portfolio_metrics
            WHERE id = 1
            """
        )
        if not rows:
            return None
        irr, twr, invested, withdrawn, current, profit_loss, return_pct, calc_date = rows[0]
        return PerformanceSummary(
            irr=float(irr),
            twr=float(twr),
            total_invested=Decimal(invested),
            total_withdrawn=Decimal(withdrawn),
            current_value=Decimal(current),
            profit_loss=Decimal(profit_loss),
            return_percentage=Decimal(return_pct),
            calc_date=calc_date,
        )

    @staticmethod
    def _fetch(sql: str) -> list[tuple]:
        try:
            with get_conn() as conn:
                with conn.cursor() as cur:
                    cur.execute(sql)
                    return cur.fetchall()
        except psycopg.Error as exc:
            raise PersistenceError(f"Failed to read derived series: {exc}") from exc


def _write_snapshot(cur: psycopg.Cursor, snapshot: DerivedSeriesSnapshot) -> None:
    cur.executemany(
        """
        INSERT INTO precomputed_ticker_prices
            (ticker, date, original_currency, original_price, converted_price)
        VALUES (%s, %s, %s, %s, %s)
        ON CONFLICT (ticker, date)
        DO UPDATE SET original_currency = EXCLUDED.original_currency,
                      original_price = EXCLUDED.original_price,
                      converted_price = EXCLUDED.converted_price,
                      last_updated = NOW();
        """,
        [
            (row.ticker, row.date, row.original_currency, str(row.original_price), str(row.converted_price))
            for row in snapshot.ticker_prices
        ],
    )
    cur.executemany(
        """
        INSERT INTO precomputed_portfolio_values (date, daily_value, invested_value)
        VALUES (%s, %s, %s)
        ON CONFLICT (date)
        DO UPDATE SET daily_value = EXCLUDED.daily_value,
                      invested_value = EXCLUDED.invested_value,
                      last_updated = NOW();
        """,
        [(row.date, str(row.total_value), str(row.invested_value)) for row in snapshot.daily_valuations],
    )
    cur.executemany(
        """
        INSERT INTO precomputed_ticker_daily_values (date, ticker, daily_value)
        VALUES (%s, %s, %s)
        ON CONFLICT (date, ticker)
        DO UPDATE SET daily_value = EXCLUDED.daily_value,
                      last_updated = NOW();
        """,
        [
            (row.date, ticker, str(value))
            for row in snapshot.daily_valuations
            for ticker, value in row.ticker_values.items()
        ],
    )
    cur.executemany(
        """
        INSERT INTO precomputed_monthly_contributions (month, net_value)
        VALUES (%s, %s)
        ON CONFLICT (month)
        DO UPDATE SET net_value = EXCLUDED.net_value,
                      last_updated = NOW();
        """,
        [(row.month, str(row.net_value)) for row in snapshot.monthly_contributions],
    )
    summary = snapshot.summary
    if summary is None:
        return
    cur.execute(
        """
        INSERT INTO precomputed_portfolio_metrics
            (id, irr, twr, total_invested, total_withdrawn, current_value,
             profit_loss, return_percentage, calc_date)
        VALUES (1, %s, %s, %s, %s, %s, %s, %s, %s)
        ON CONFLICT (id)
        DO UPDATE SET irr = EXCLUDED.irr,
                      twr = EXCLUDED.twr,
                      total_invested = EXCLUDED.total_invested,
                      total_withdrawn = EXCLUDED.total_withdrawn,
                      current_value = EXCLUDED.current_value,
                      profit_loss = EXCLUDED.profit_loss,
                      return_percentage = EXCLUDED.return_percentage,
                      calc_date = EXCLUDED.calc_date,
                      last_updated = NOW();
        """,
        (
            repr(summary.irr),
            repr(summary.twr),
            str(summary.total_invested),
            str(summary.total_withdrawn),
            str(summary.current_value),
            str(summary.profit_loss),
            str(summary.return_percentage),
            summary.calc_date,
        ),
    )


def _run_from_row(row: tuple) -> PrecomputeRun:
    run_id, status, started_at, completed_at, last_error, total_tickers = row
    return PrecomputeRun(
        run_id=run_id,
        status=RunStatus(status),
        started_at=started_at,
        completed_at=completed_at,
        last_error=last_error,
        total_tickers=total_tickers,
    )
