from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from foliotrack.core.valuation.config import FxRule, ValuationConfig
from foliotrack.core.valuation.currency import CurrencyNormalizer
from foliotrack.core.valuation.errors import ConversionError

DAY = date(2024, 3, 1)


def test_base_currency_passes_through() -> None:
    normalizer = CurrencyNormalizer()

    assert normalizer.convert(Decimal("12.34"), "GBP", DAY) == Decimal("12.34")


def test_pence_are_divided_by_one_hundred() -> None:
    normalizer = CurrencyNormalizer()

    assert normalizer.convert(Decimal("100"), "GBp", DAY) == Decimal("1.00")


def test_usd_divides_by_gbpusd_rate() -> None:
    normalizer = CurrencyNormalizer()

    assert normalizer.convert(Decimal("100"), "USD", DAY, Decimal("1.25")) == Decimal("80.00")


def test_eur_multiplies_by_eurgbp_rate() -> None:
    normalizer = CurrencyNormalizer()

    assert normalizer.convert(Decimal("100"), "EUR", DAY, Decimal("0.85")) == Decimal("85.00")


def test_missing_rate_is_an_error() -> None:
    normalizer = CurrencyNormalizer()

    with pytest.raises(ConversionError, match="FX rate required for USD"):
        normalizer.convert(Decimal("100"), "USD", DAY)


def test_zero_rate_is_an_error() -> None:
    normalizer = CurrencyNormalizer()

    with pytest.raises(ConversionError, match="FX rate is zero"):
        normalizer.convert(Decimal("100"), "USD", DAY, Decimal("0"))


def test_unknown_currency_is_an_error() -> None:
    normalizer = CurrencyNormalizer()

    with pytest.raises(ConversionError, match="Unknown currency: JPY"):
        normalizer.convert(Decimal("100"), "JPY", DAY, Decimal("150"))


def test_fx_ticker_lookup_follows_table() -> None:
    normalizer = CurrencyNormalizer()

    assert normalizer.fx_ticker("USD") == "GBPUSD=X"
    assert normalizer.fx_ticker("EUR") == "EURGBP=X"
    assert normalizer.fx_ticker("GBP") is None
    assert normalizer.is_base("GBp")
    assert not normalizer.is_base("USD")


def test_custom_table_extends_conversions() -> None:
    config = ValuationConfig(fx_table={"JPY": FxRule(ticker="GBPJPY=X", multiply=False)})
    normalizer = CurrencyNormalizer(config)

    assert normalizer.convert(Decimal("190"), "JPY", DAY, Decimal("190")) == Decimal("1")
    with pytest.raises(ConversionError, match="Unknown currency: USD"):
        normalizer.convert(Decimal("100"), "USD", DAY, Decimal("1.25"))
