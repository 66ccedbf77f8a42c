import os
from contextlib import contextmanager
from typing import Iterator

from dotenv import load_dotenv
import psycopg

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")

# Serializes the clear-and-rewrite phase across processes.
DERIVED_SERIES_LOCK_KEY = 724_301


@contextmanager
def get_conn() -> Iterator[psycopg.Connection]:
    if not DATABASE_URL:
        raise RuntimeError("DATABASE_URL is not set")
    with psycopg.connect(DATABASE_URL) as conn:
        yield conn


def ensure_schema() -> None:
    # Monetary columns are TEXT holding exact decimal strings.
    ddl = """
    CREATE TABLE IF NOT EXISTS precomputed_ticker_prices (
        ticker TEXT NOT NULL,
        date DATE NOT NULL,
        original_currency TEXT NOT NULL,
        original_price TEXT NOT NULL,
        converted_price TEXT NOT NULL,
        last_updated TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        PRIMARY KEY (ticker, date)
    );
    CREATE TABLE IF NOT EXISTS precomputed_portfolio_values (
        date DATE PRIMARY KEY,
        daily_value TEXT NOT NULL,
        invested_value TEXT NOT NULL,
        last_updated TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );
    CREATE TABLE IF NOT EXISTS precomputed_ticker_daily_values (
        date DATE NOT NULL,
        ticker TEXT NOT NULL,
        daily_value TEXT NOT NULL,
        last_updated TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        PRIMARY KEY (date, ticker)
    );
    CREATE TABLE IF NOT EXISTS precomputed_monthly_contributions (
        month TEXT PRIMARY KEY,
        net_value TEXT NOT NULL,
        last_updated TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );
    CREATE TABLE IF NOT EXISTS precomputed_portfolio_metrics (
        id INTEGER PRIMARY KEY,
        irr TEXT NOT NULL,
        twr TEXT NOT NULL,
        total_invested TEXT NOT NULL,
        total_withdrawn TEXT NOT NULL,
        current_value TEXT NOT NULL,
        profit_loss TEXT NOT NULL,
        return_percentage TEXT NOT NULL,
        calc_date DATE NOT NULL,
        last_updated TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );
    CREATE TABLE IF NOT EXISTS precompute_status (
        id BIGSERIAL PRIMARY KEY,
        status TEXT NOT NULL,
        started_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        completed_at TIMESTAMPTZ,
        total_tickers INTEGER,
        last_error TEXT
    );
    """
    with get_conn() as conn:
        with conn.cursor() as cur:
            cur.execute(ddl)
        conn.commit()
