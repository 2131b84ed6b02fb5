"""
Ledger balance replay.

Turns an account list and an unordered list of dated ledger rows into balances
as of a calendar day. The replay is a pure sum: rows can arrive in any order
and the result is the same, given the same cutoff.

Rules:
- Each account starts from its initial balance (0 when it has none).
- Rows dated after ``as_of`` are ignored (day granularity, inclusive cutoff).
- Income credits the magnitude, expense debits it. A ``transfer`` row moves
  money by its link: ``transfer_to_id`` debits, ``transfer_from_id`` credits.
- Rows whose amount is not a finite number are logged and skipped.
- Balances are never clamped; negative results are valid.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime
from decimal import Decimal

from loguru import logger

from sparebook.core.exceptions import ContractViolationError

from .calendar import CalendarDay, is_on_or_before, to_calendar_day, today
from .models import ZERO, Account, AccountType, Direction, LedgerTransaction, parse_decimal


def signed_amount(tx: LedgerTransaction) -> Decimal | None:
    """The row's effect on its account's balance, or None if it cannot be applied."""
    amount = parse_decimal(tx.amount)
    if amount is None:
        logger.warning(f"Transaction {tx.id}: amount {tx.amount!r} is not a finite number, skipping")
        return None

    direction = tx.direction
    if direction is None:
        logger.warning(f"Transaction {tx.id}: transfer row has no transfer link, skipping")
        return None

    magnitude = abs(amount)
    return magnitude if direction is Direction.CREDIT else -magnitude


def _resolve_cutoff(as_of: date | datetime | str | None) -> CalendarDay:
    return today() if as_of is None else to_calendar_day(as_of)


def compute_balances(
    accounts: Iterable[Account],
    transactions: Iterable[LedgerTransaction],
    as_of: date | datetime | str | None = None,
) -> dict[str, Decimal]:
    """Balance of every account as of a calendar day.

    Args:
        accounts: Accounts to report on; each seeds its own running total.
        transactions: Ledger rows for those accounts, in any order.
        as_of: Inclusive cutoff day. Defaults to today in the host's zone.

    Returns:
        Mapping of account id to balance. Rows for accounts not in ``accounts``
        are ignored.
    """
    cutoff = _resolve_cutoff(as_of)

    balances: dict[str, Decimal] = {}
    for account in accounts:
        balances[account.id] = account.initial_balance if account.initial_balance is not None else ZERO

    for tx in transactions:
        if tx.account_id not in balances:
            continue
        if not is_on_or_before(tx.date, cutoff):
            continue
        delta = signed_amount(tx)
        if delta is None:
            continue
        balances[tx.account_id] += delta

    return balances


def compute_balance(
    account_id: str,
    initial_balance: Decimal | None,
    transactions: Iterable[LedgerTransaction],
    as_of: date | datetime | str | None = None,
) -> Decimal:
    """Balance of a single account; rows for other accounts are ignored."""
    if not account_id:
        raise ContractViolationError("account_id is required")

    cutoff = _resolve_cutoff(as_of)
    balance = initial_balance if initial_balance is not None else ZERO

    for tx in transactions:
        if tx.account_id != account_id or not is_on_or_before(tx.date, cutoff):
            continue
        delta = signed_amount(tx)
        if delta is not None:
            balance += delta

    return balance


def compute_total_balance(
    accounts: Iterable[Account],
    transactions: Iterable[LedgerTransaction],
    as_of: date | datetime | str | None = None,
) -> Decimal:
    """Sum of all account balances as of a calendar day."""
    return sum(compute_balances(accounts, transactions, as_of).values(), ZERO)


def compute_balance_change(transactions: Iterable[LedgerTransaction]) -> Decimal:
    """Net income minus expenses over a set of rows.

    Transfer legs are left out: they only move money between the owner's
    accounts, so they do not change the total.
    """
    change = ZERO
    for tx in transactions:
        if tx.is_transfer_leg:
            continue
        delta = signed_amount(tx)
        if delta is not None:
            change += delta
    return change


def last_month_balance_from_current(
    current_balance: Decimal,
    current_month_transactions: Iterable[LedgerTransaction],
) -> Decimal:
    """Estimate last month's closing balance by backing out this month's net change."""
    return current_balance - compute_balance_change(current_month_transactions)


def balance_by_type(balances: dict[str, Decimal], accounts: Iterable[Account]) -> dict[str, Decimal]:
    """Total balance per account type."""
    totals: dict[str, Decimal] = {}
    for account in accounts:
        key = str(account.type)
        totals[key] = totals.get(key, ZERO) + balances.get(account.id, ZERO)
    return totals


def checking_savings_breakdown(balances: dict[str, Decimal], accounts: Iterable[Account]) -> dict[str, Decimal]:
    """Split balances into checking, savings and everything else."""
    breakdown = {"checking": ZERO, "savings": ZERO, "other": ZERO}
    for account in accounts:
        balance = balances.get(account.id, ZERO)
        if account.type == AccountType.CHECKING:
            breakdown["checking"] += balance
        elif account.type == AccountType.SAVINGS:
            breakdown["savings"] += balance
        else:
            breakdown["other"] += balance
    return breakdown
