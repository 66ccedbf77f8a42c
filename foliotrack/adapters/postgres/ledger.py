from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

import psycopg

from foliotrack.adapters.postgres.db import get_conn
from foliotrack.core.ledger.models import (
    CashFlowEvent,
    TradeRecord,
    classify_cash_activity,
    classify_transaction_type,
)
from foliotrack.core.valuation.errors import MalformedInputError, PersistenceError


class PostgresTradeLedger:
    """Reads the ingested ``trades`` table, preferring mapped tickers over raw ones."""

    def load_trades(self) -> list[TradeRecord]:
        sql = """
        SELECT COALESCE(m.ticker, t.ticker) AS ticker,
               t.transaction_type,
               t.quantity,
               t.trade_date_time,
               t.settlement_date,
               t.total_trade_value
        FROM trades t
        LEFT JOIN isin_to_ticker m ON m.isin = t.security_isin
        ORDER BY t.trade_date_time
        """
        rows = _fetch_all(sql)
        return [
            TradeRecord(
                ticker=_optional_text(ticker),
                transaction_type=classify_transaction_type(transaction_type),
                quantity=_decimal(quantity, "quantity"),
                trade_time=_datetime(trade_time, "trade_date_time"),
                settlement_date=_date(settlement, "settlement_date"),
                total_value=_decimal(total_value, "total_trade_value"),
                raw_transaction_type=transaction_type or "",
            )
            for ticker, transaction_type, quantity, trade_time, settlement, total_value in rows
        ]


class PostgresCashFlowLedger:
    def load_cash_flows(self) -> list[CashFlowEvent]:
        sql = """
        SELECT date, activity, net_flow
        FROM cash_flows
        ORDER BY date
        """
        return [_cash_flow(row) for row in _fetch_all(sql)]

    def load_external_cash_flows(self) -> list[CashFlowEvent]:
        return [event for event in self.load_cash_flows() if event.is_external]


def _cash_flow(row: tuple) -> CashFlowEvent:
    day, activity, net_flow = row
    return CashFlowEvent(
        date=_date(day, "date"),
        net_amount=_decimal(net_flow, "net_flow"),
        classification=classify_cash_activity(activity),
        activity=activity or "",
    )


def _fetch_all(sql: str) -> list[tuple]:
    try:
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(sql)
                return cur.fetchall()
    except psycopg.Error as exc:
        raise PersistenceError(f"Failed to read ledger: {exc}") from exc


def _decimal(value: object, field_name: str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    text = str(value if value is not None else "").replace(",", "").replace("£", "").strip()
    if not text:
        return Decimal(0)
    try:
        return Decimal(text)
    except InvalidOperation as exc:
        raise MalformedInputError(f"{field_name} is not a decimal: {value!r}") from exc


def _datetime(value: object, field_name: str) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = str(value or "").strip()
    for fmt in ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d"):
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise MalformedInputError(f"{field_name} is not a timestamp: {value!r}")


def _date(value: object, field_name: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return _datetime(value, field_name).date()


def _optional_text(value: object) -> Optional[str]:
    text = str(value).strip() if value is not None else ""
    return text or None
