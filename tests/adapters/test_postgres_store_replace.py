from __future__ import annotations

from contextlib import contextmanager
from datetime import date
from decimal import Decimal

import psycopg
import pytest

from foliotrack.adapters.postgres import store as store_module
from foliotrack.adapters.postgres.store import PostgresDerivedSeriesStore
from foliotrack.core.valuation.errors import PersistenceError
from foliotrack.core.valuation.models import (
    DailyValuation,
    DerivedSeriesSnapshot,
    MonthlyContribution,
    PerformanceSummary,
    RunStatus,
)


class _RecordingCursor:
    def __init__(self, log: list, fail_on: str | None) -> None:
        self._log = log
        self._fail_on = fail_on

    def __enter__(self):
        return self

    def __exit__(self, *exc) -> bool:
        return False

    def execute(self, sql: str, params=None) -> None:
        if self._fail_on and self._fail_on in sql:
            raise psycopg.OperationalError("server closed the connection")
        self._log.append(("execute", " ".join(sql.split()), params))

    def executemany(self, sql: str, rows) -> None:
        self._log.append(("executemany", " ".join(sql.split()), list(rows)))


class _RecordingConnection:
    def __init__(self, fail_on: str | None = None) -> None:
        self.log: list = []
        self._fail_on = fail_on

    def cursor(self) -> _RecordingCursor:
        return _RecordingCursor(self.log, self._fail_on)

    @contextmanager
    def transaction(self):
        self.log.append(("begin", None, None))
        yield
        self.log.append(("commit", None, None))


def _install(monkeypatch, conn: _RecordingConnection) -> None:
    @contextmanager
    def _fake_conn():
        yield conn

    monkeypatch.setattr(store_module, "get_conn", _fake_conn)


def _params(conn: _RecordingConnection, kind: str, fragment: str):
    return next(entry[2] for entry in conn.log if entry[0] == kind and entry[1] and fragment in entry[1])


def _snapshot() -> DerivedSeriesSnapshot:
    day = date(2024, 3, 10)
    return DerivedSeriesSnapshot(
        daily_valuations=[
            DailyValuation(
                date=day,
                ticker_values={"AAA": Decimal("60.10"), "BBB": Decimal("40")},
                total_value=Decimal("100.10"),
                invested_value=Decimal("90"),
            )
        ],
        monthly_contributions=[MonthlyContribution(month="2024-03", net_value=Decimal("90"))],
        summary=PerformanceSummary(
            irr=0.0512,
            twr=0.04,
            total_invested=Decimal("90"),
            total_withdrawn=Decimal("0"),
            current_value=Decimal("100.10"),
            profit_loss=Decimal("10.10"),
            return_percentage=Decimal("0.1122"),
            calc_date=day,
        ),
    )


def test_replace_locks_clears_then_writes_in_one_transaction(monkeypatch) -> None:
    conn = _RecordingConnection()
    _install(monkeypatch, conn)

    PostgresDerivedSeriesStore().replace_derived_series(_snapshot())

    kinds = [entry[0] for entry in conn.log]
    assert kinds[0] == "begin"
    assert kinds[-1] == "commit"
    assert "pg_advisory_xact_lock" in conn.log[1][1]
    deletes = [entry[1] for entry in conn.log if entry[1] and entry[1].startswith("DELETE FROM")]
    assert len(deletes) == 5
    first_insert = next(i for i, entry in enumerate(conn.log) if entry[1] and "INSERT INTO" in entry[1])
    last_delete = max(i for i, entry in enumerate(conn.log) if entry[1] and entry[1].startswith("DELETE"))
    assert last_delete < first_insert


def test_replace_writes_exact_decimal_text(monkeypatch) -> None:
    conn = _RecordingConnection()
    _install(monkeypatch, conn)

    PostgresDerivedSeriesStore().replace_derived_series(_snapshot())

    ticker_rows = _params(conn, "executemany", "precomputed_ticker_daily_values")
    assert ticker_rows == [
        (date(2024, 3, 10), "AAA", "60.10"),
        (date(2024, 3, 10), "BBB", "40"),
    ]
    metrics = _params(conn, "execute", "INSERT INTO precomputed_portfolio_metrics")
    assert metrics[0] == "0.0512"
    assert metrics[5] == "10.10"


def test_database_errors_become_persistence_errors(monkeypatch) -> None:
    conn = _RecordingConnection(fail_on="DELETE FROM")
    _install(monkeypatch, conn)

    with pytest.raises(PersistenceError, match="Failed to replace derived series"):
        PostgresDerivedSeriesStore().replace_derived_series(_snapshot())

    assert ("commit", None, None) not in conn.log


def test_finish_run_only_stamps_completion_on_success(monkeypatch) -> None:
    conn = _RecordingConnection()
    conn.commit = lambda: None
    _install(monkeypatch, conn)
    store = PostgresDerivedSeriesStore()

    store.finish_run(3, RunStatus.FAILED, error="boom")
    store.finish_run(4, RunStatus.COMPLETED, total_tickers=2)

    failed, completed = [entry[2] for entry in conn.log]
    assert failed == ("failed", False, "boom", None, 3)
    assert completed == ("completed", True, None, 2, 4)
