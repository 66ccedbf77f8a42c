from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PrecomputeStarted:
    run_id: int
    timestamp: datetime

    @classmethod
    def now(cls, run_id: int) -> "PrecomputeStarted":
        return cls(run_id=run_id, timestamp=_now())


@dataclass(frozen=True)
class PrecomputeFinished:
    run_id: int
    tickers: int
    days: int
    start_date: Optional[date]
    end_date: Optional[date]
    current_value: Decimal
    timestamp: datetime

    @classmethod
    def now(
        cls,
        run_id: int,
        *,
        tickers: int,
        days: int,
        start_date: Optional[date],
        end_date: Optional[date],
        current_value: Decimal,
    ) -> "PrecomputeFinished":
        return cls(
            run_id=run_id,
            tickers=tickers,
            days=days,
            start_date=start_date,
            end_date=end_date,
            current_value=current_value,
            timestamp=_now(),
        )


@dataclass(frozen=True)
class PrecomputeFailed:
    run_id: int
    error: str
    timestamp: datetime

    @classmethod
    def now(cls, run_id: int, error: str) -> "PrecomputeFailed":
        return cls(run_id=run_id, error=error, timestamp=_now())
