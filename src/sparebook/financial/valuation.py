"""
Investment account valuation.

Several systems can claim to know what an investment account is worth: a
linked brokerage, a total the user typed in, and the holdings math. The value
is taken from the first available source in a fixed order:

1. brokerage ``total_equity``
2. brokerage ``market_value + cash`` (snapshot present, equity missing)
3. the user's manual total (only when there is no brokerage snapshot)
4. the sum of holdings market values
5. nothing: a NONE-sourced zero that callers can tell apart from a real zero

Sources are never averaged or blended.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import StrEnum

from loguru import logger

from sparebook.core.exceptions import ContractViolationError

from .models import HUNDRED, ZERO, Account, BrokerageSnapshot, Holding, SecurityPrice, parse_decimal


class ValuationSource(StrEnum):
    BROKERAGE_EQUITY = "brokerage_equity"
    BROKERAGE_COMPONENTS = "brokerage_components"
    MANUAL = "manual"
    HOLDINGS = "holdings"
    MIXED = "mixed"
    NONE = "none"


@dataclass(frozen=True)
class Valuation:
    """A resolved account value tagged with where it came from."""

    value: Decimal
    source: ValuationSource

    @property
    def has_source(self) -> bool:
        """False when no source existed; ``value`` is then a placeholder 0."""
        return self.source is not ValuationSource.NONE

    def display(self, placeholder: str = "—") -> str:
        return f"{self.value:,.2f}" if self.has_source else placeholder


NO_VALUATION = Valuation(ZERO, ValuationSource.NONE)


def resolve_investment_account_value(
    account_id: str,
    brokerage_snapshot: BrokerageSnapshot | None = None,
    manual_value: Decimal | None = None,
    holdings_for_account: Iterable[Holding] | None = None,
) -> Valuation:
    """Resolve one authoritative value for an investment account.

    Args:
        account_id: The account being valued (required).
        brokerage_snapshot: Balances from a linked brokerage, if any. A snapshot
            with every field empty counts as no snapshot.
        manual_value: User-entered total, if any.
        holdings_for_account: Holdings already scoped to this account.

    Raises:
        ContractViolationError: If ``account_id`` is missing.
    """
    if not account_id:
        raise ContractViolationError("account_id is required to resolve a valuation")

    if brokerage_snapshot is not None and not brokerage_snapshot.is_empty:
        if brokerage_snapshot.total_equity is not None:
            return Valuation(brokerage_snapshot.total_equity, ValuationSource.BROKERAGE_EQUITY)
        components = (brokerage_snapshot.market_value or ZERO) + (brokerage_snapshot.cash or ZERO)
        return Valuation(components, ValuationSource.BROKERAGE_COMPONENTS)

    if manual_value is not None:
        manual = parse_decimal(manual_value)
        if manual is not None:
            return Valuation(manual, ValuationSource.MANUAL)
        logger.warning(f"Account {account_id}: manual value {manual_value!r} is not a finite number, ignoring it")

    holdings = list(holdings_for_account or [])
    if holdings:
        return Valuation(sum((h.market_value for h in holdings), ZERO), ValuationSource.HOLDINGS)

    logger.warning(f"Account {account_id}: no valuation source available")
    return NO_VALUATION


@dataclass
class AccountValuation:
    """An investment account's resolved value and its share of the portfolio."""

    account_id: str
    name: str
    valuation: Valuation
    allocation_percent: Decimal = ZERO

    @property
    def value(self) -> Decimal:
        return self.valuation.value

    def to_dict(self) -> dict:
        return {
            "id": self.account_id,
            "name": self.name,
            "value": float(self.value) if self.valuation.has_source else None,
            "source": str(self.valuation.source),
            "allocationPercent": float(self.allocation_percent),
        }


def resolve_portfolio_accounts(
    accounts: Iterable[Account],
    holdings: Iterable[Holding],
    brokerage_snapshots: Mapping[str, BrokerageSnapshot] | None = None,
    manual_values: Mapping[str, Decimal] | None = None,
) -> list[AccountValuation]:
    """Value every account given and work out each one's allocation of the total."""
    holdings = list(holdings)
    brokerage_snapshots = brokerage_snapshots or {}
    manual_values = manual_values or {}

    results = []
    for account in accounts:
        valuation = resolve_investment_account_value(
            account.id,
            brokerage_snapshots.get(account.id),
            manual_values.get(account.id),
            [h for h in holdings if h.account_id == account.id],
        )
        results.append(AccountValuation(account_id=account.id, name=account.name, valuation=valuation))

    total = sum((r.value for r in results), ZERO)
    if total > 0:
        for r in results:
            r.allocation_percent = r.value / total * HUNDRED
    return results


def total_portfolio_value(valuations: Iterable[AccountValuation]) -> Valuation:
    """Sum of account values; NONE-sourced when no account had a source."""
    valuations = list(valuations)
    sourced = [v for v in valuations if v.valuation.has_source]
    if not sourced:
        return NO_VALUATION
    sources = {v.valuation.source for v in sourced}
    source = sources.pop() if len(sources) == 1 else ValuationSource.MIXED
    return Valuation(sum((v.value for v in sourced), ZERO), source)


@dataclass
class PortfolioSummary:
    total_value: Decimal
    total_cost: Decimal
    total_return: Decimal
    total_return_percent: Decimal
    day_change: Decimal
    day_change_percent: Decimal
    holdings_count: int

    def to_dict(self) -> dict:
        return {
            "totalValue": float(self.total_value),
            "totalCost": float(self.total_cost),
            "totalReturn": float(self.total_return),
            "totalReturnPercent": float(self.total_return_percent),
            "dayChange": float(self.day_change),
            "dayChangePercent": float(self.day_change_percent),
            "holdingsCount": self.holdings_count,
        }


def summarize_portfolio(
    holdings: Iterable[Holding],
    total_value: Decimal,
    previous_day_prices: Iterable[SecurityPrice] | None = None,
) -> PortfolioSummary:
    """Headline numbers for a portfolio.

    Day change compares ``total_value`` with yesterday's value of the same
    holdings, priced at yesterday's close where known and at each holding's
    last price otherwise. Without any of yesterday's prices, day change is 0.
    """
    holdings = list(holdings)
    total_cost = sum((h.book_value for h in holdings), ZERO)
    total_return = total_value - total_cost

    yesterday: dict[str, Decimal] = {}
    for p in previous_day_prices or []:
        price = parse_decimal(p.price)
        if price is not None and price > 0:
            yesterday[p.security_id] = price

    day_change = ZERO
    day_change_percent = ZERO
    if yesterday:
        previous_value = sum(
            (h.quantity * yesterday.get(h.security_id, h.last_price) for h in holdings),
            ZERO,
        )
        if previous_value > 0:
            day_change = total_value - previous_value
            day_change_percent = day_change / previous_value * HUNDRED

    return PortfolioSummary(
        total_value=total_value,
        total_cost=total_cost,
        total_return=total_return,
        total_return_percent=total_return / total_cost * HUNDRED if total_cost > 0 else ZERO,
        day_change=day_change,
        day_change_percent=day_change_percent,
        holdings_count=len(holdings),
    )
