from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping


@dataclass(frozen=True)
class FxRule:
    ticker: str
    multiply: bool


def default_fx_table() -> dict[str, FxRule]:
    return {
        "USD": FxRule(ticker="GBPUSD=X", multiply=False),
        "EUR": FxRule(ticker="EURGBP=X", multiply=True),
    }


@dataclass(frozen=True)
class ValuationConfig:
    base_currency: str = "GBP"
    minor_currency: str = "GBp"
    lookback_buffer_days: int = 7
    fallback_back_days: int = 90
    fallback_forward_days: int = 30
    fx_table: Mapping[str, FxRule] = field(default_factory=default_fx_table)

    def __post_init__(self) -> None:
        if self.lookback_buffer_days < 0:
            raise ValueError("lookback_buffer_days must not be negative")
        if self.fallback_back_days < 0 or self.fallback_forward_days < 0:
            raise ValueError("fallback windows must not be negative")
        if not self.base_currency:
            raise ValueError("base_currency is required")

    @classmethod
    def from_env(cls) -> "ValuationConfig":
        fx_env = os.getenv("VALUATION_FX_TABLE")
        return cls(
            base_currency=os.getenv("VALUATION_BASE_CURRENCY", "GBP"),
            minor_currency=os.getenv("VALUATION_MINOR_CURRENCY", "GBp"),
            lookback_buffer_days=int(os.getenv("VALUATION_LOOKBACK_BUFFER_DAYS", "7")),
            fallback_back_days=int(os.getenv("VALUATION_FALLBACK_BACK_DAYS", "90")),
            fallback_forward_days=int(os.getenv("VALUATION_FALLBACK_FORWARD_DAYS", "30")),
            fx_table=parse_fx_table(fx_env) if fx_env else default_fx_table(),
        )


def parse_fx_table(value: str) -> dict[str, FxRule]:
    """
    Parse ``CCY:TICKER:RULE`` entries separated by commas, e.g.
    ``USD:GBPUSD=X:divide,EUR:EURGBP=X:multiply``.
    """
    table: dict[str, FxRule] = {}
    for chunk in value.split(","):
        entry = chunk.strip()
        if not entry:
            continue
        parts = [part.strip() for part in entry.split(":")]
        if len(parts) != 3 or not parts[0] or not parts[1]:
            raise ValueError(f"invalid fx table entry: {entry!r}")
        currency, ticker, rule = parts
        normalized = rule.lower()
        if normalized in {"multiply", "mul", "*"}:
            multiply = True
        elif normalized in {"divide", "div", "/"}:
            multiply = False
        else:
            raise ValueError(f"invalid fx rule {rule!r} for {currency}")
        table[currency] = FxRule(ticker=ticker, multiply=multiply)
    return table
