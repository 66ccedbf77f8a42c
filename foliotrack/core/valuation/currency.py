from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional

from foliotrack.core.valuation.config import ValuationConfig
from foliotrack.core.valuation.errors import ConversionError

_MINOR_UNITS = Decimal(100)


class CurrencyNormalizer:
    def __init__(self, config: Optional[ValuationConfig] = None) -> None:
        self._config = config or ValuationConfig()

    @property
    def base_currency(self) -> str:
        return self._config.base_currency

    def is_base(self, currency: str) -> bool:
        return currency in (self._config.base_currency, self._config.minor_currency)

    def fx_ticker(self, currency: str) -> Optional[str]:
        rule = self._config.fx_table.get(currency)
        return rule.ticker if rule else None

    def convert(
        self,
        amount: Decimal,
        currency: str,
        on: date,
        fx_rate: Optional[Decimal] = None,
    ) -> Decimal:
        if currency == self._config.base_currency:
            return amount
        if currency == self._config.minor_currency:
            return amount / _MINOR_UNITS

        rule = self._config.fx_table.get(currency)
        if rule is None:
            raise ConversionError(f"Unknown currency: {currency}")
        if fx_rate is None:
            raise ConversionError(f"FX rate required for {currency} on {on}")
        if fx_rate.is_zero():
            raise ConversionError(f"FX rate is zero for {currency} on {on}")
        if rule.multiply:
            return amount * fx_rate
        return amount / fx_rate
