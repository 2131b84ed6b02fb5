"""Shared test fixtures for sparebook."""

import tempfile
from datetime import date, timedelta
from decimal import Decimal

import pytest

from sparebook.financial.models import (
    Account,
    InvestmentTransaction,
    LedgerTransaction,
    Security,
)

EPOCH = date(2024, 3, 1)


@pytest.fixture
def tmp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as d:
        yield d


@pytest.fixture
def day():
    """``day(n)`` is the calendar day ``n`` days after a fixed epoch."""

    def _day(n: int) -> date:
        return EPOCH + timedelta(days=n)

    return _day


@pytest.fixture
def ledger_tx():
    """Factory for ledger rows."""

    def _make(tx_id, account_id, tx_type, amount, when, **kwargs) -> LedgerTransaction:
        return LedgerTransaction(id=tx_id, account_id=account_id, type=tx_type, amount=amount, date=when, **kwargs)

    return _make


@pytest.fixture
def trade():
    """Factory for investment transactions, defaulting to AAPL in account ``brk``."""

    def _make(tx_id, tx_type, quantity, price, when, account_id="brk", security_id="AAPL", **kwargs):
        return InvestmentTransaction(
            id=tx_id,
            account_id=account_id,
            type=tx_type,
            date=when,
            security_id=security_id,
            quantity=quantity,
            price=price,
            **kwargs,
        )

    return _make


@pytest.fixture
def checking():
    return Account(id="chk", type="checking", initial_balance=Decimal("1000"), name="Everyday")


@pytest.fixture
def savings():
    return Account(id="sav", type="savings", initial_balance=Decimal("0"), name="Rainy Day")


@pytest.fixture
def brokerage():
    return Account(id="brk", type="investment", name="Brokerage")


@pytest.fixture
def securities():
    return [
        Security(id="AAPL", symbol="AAPL", name="Apple Inc.", asset_class="stock", sector="Technology"),
        Security(id="VTI", symbol="VTI", name="Vanguard Total Stock Market ETF", asset_class="etf"),
    ]
