from __future__ import annotations

import pytest

from foliotrack.core.ledger.models import (
    CashFlowClass,
    TransactionType,
    classify_cash_activity,
    classify_transaction_type,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Buy", TransactionType.BUY),
        ("ETF BUY", TransactionType.BUY),
        ("sell", TransactionType.SELL),
        ("Dividend Reinvestment", TransactionType.DIVIDEND_REINVESTMENT),
        ("Dividend", TransactionType.OTHER),
        ("", TransactionType.OTHER),
        (None, TransactionType.OTHER),
    ],
)
def test_classify_transaction_type_uses_case_insensitive_substrings(raw, expected) -> None:
    assert classify_transaction_type(raw) == expected


def test_classify_transaction_type_passes_variants_through() -> None:
    assert classify_transaction_type(TransactionType.SELL) is TransactionType.SELL


def test_share_effect_is_decided_by_variant() -> None:
    assert TransactionType.BUY.adds_shares
    assert TransactionType.DIVIDEND_REINVESTMENT.adds_shares
    assert not TransactionType.SELL.adds_shares
    assert not TransactionType.OTHER.adds_shares


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Payment Received", CashFlowClass.PAYMENT_RECEIVED),
        ("WITHDRAWAL to bank", CashFlowClass.WITHDRAWAL),
        ("Isa Transfer In", CashFlowClass.ISA_TRANSFER_IN),
        ("Management fee", CashFlowClass.OTHER),
    ],
)
def test_classify_cash_activity(raw, expected) -> None:
    assert classify_cash_activity(raw) == expected


def test_only_transfer_classes_are_external() -> None:
    assert CashFlowClass.PAYMENT_RECEIVED.is_external
    assert CashFlowClass.WITHDRAWAL.is_external
    assert CashFlowClass.ISA_TRANSFER_IN.is_external
    assert not CashFlowClass.OTHER.is_external
