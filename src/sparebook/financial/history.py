"""
Historical portfolio value, one point per calendar day.

The series is rebuilt in two passes over the buy/sell trades dated inside the
window:

1. Unwind. Start from the current holdings (the state at the end of the
   window) and reverse every in-window trade, newest first, to recover the
   holdings as they stood before the window opened.
2. Replay. Walk the days from window start to today, apply each day's trades
   with the same average-cost rule the holdings use, and price what is held.

Replaying forward from the unwound state lands back on the current holdings,
which is what makes each day's quantities correct. Trades before the window are
already folded into the current holdings and are never replayed, so callers
may pass the full history or only the window.

Each day's holdings are priced at that day's close where one is on file and at
the average cost otherwise. The last point (today) is pinned to the live
valuation so the chart always ends on the headline number.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from datetime import date, datetime, timedelta
from decimal import Decimal

from loguru import logger

from sparebook.core.exceptions import ContractViolationError

from . import calendar
from .holdings import CostBasis, HoldingKey, Trade, apply_trade, chronological, to_trade
from .models import (
    ZERO,
    HistoricalDataPoint,
    Holding,
    InvestmentTransaction,
    InvestmentTransactionType,
    SecurityPrice,
    parse_decimal,
)


# Roughly a century; keeps the window start inside the representable date range
MAX_WINDOW_DAYS = 36_600


def seed_from_holdings(holdings: Iterable[Holding]) -> dict[HoldingKey, CostBasis]:
    """Working cost-basis map from a holdings list (quantity and average price)."""
    state: dict[HoldingKey, CostBasis] = {}
    for h in holdings:
        key = (h.account_id, h.security_id)
        basis = state.get(key)
        if basis is None:
            state[key] = CostBasis(quantity=h.quantity, avg_price=h.avg_price, book_value=h.quantity * h.avg_price)
        else:
            basis.buy(h.quantity, h.avg_price)
    return state


def _unwind(basis: CostBasis, trade: Trade) -> None:
    """Reverse one trade on ``basis``."""
    match trade.type:
        case InvestmentTransactionType.BUY:
            quantity = basis.quantity - trade.quantity
            if quantity > 0:
                basis.book_value = max(ZERO, basis.book_value - trade.quantity * trade.price)
                basis.avg_price = basis.book_value / quantity
                basis.quantity = quantity
            else:
                basis.quantity = basis.book_value = basis.avg_price = ZERO
        case InvestmentTransactionType.SELL:
            if basis.quantity > 0:
                # A partial sell kept the average, so the sold units come back at it
                basis.quantity += trade.quantity
                basis.book_value = basis.quantity * basis.avg_price
            else:
                # The sell closed the position; its pre-sell average is gone, use the sale price
                basis.quantity = trade.quantity
                basis.avg_price = trade.price
                basis.book_value = trade.quantity * trade.price


def _window_trades(
    transactions: Iterable[InvestmentTransaction],
    start: date,
    end: date,
) -> list[tuple[date, Trade]]:
    """Valid trades dated in ``[start, end]``, in replay order."""
    trades = []
    for tx in chronological(tx for tx in transactions if start <= tx.date <= end):
        trade = to_trade(tx)
        if trade is not None:
            trades.append((tx.date, trade))
    return trades


def _unwind_all(state: dict[HoldingKey, CostBasis], trades: list[tuple[date, Trade]]) -> None:
    for _, trade in reversed(trades):
        _unwind(state.setdefault(trade.key, CostBasis()), trade)


def holdings_at_window_start(
    current_holdings: Iterable[Holding],
    investment_transactions: Iterable[InvestmentTransaction],
    window_start: date,
    window_end: date,
) -> dict[HoldingKey, CostBasis]:
    """Unwind the current holdings back to the state before ``window_start``."""
    state = seed_from_holdings(current_holdings)
    _unwind_all(state, _window_trades(investment_transactions, window_start, window_end))
    return state


def _price_map(prices: Iterable[SecurityPrice]) -> dict[tuple[str, date], Decimal]:
    table: dict[tuple[str, date], Decimal] = {}
    for p in prices:
        price = parse_decimal(p.price)
        if price is None or price <= 0:
            logger.warning(f"Ignoring price {p.price!r} for security {p.security_id} on {p.date}")
            continue
        table[(p.security_id, p.date)] = price
    return table


def _value_on(day: date, state: dict[HoldingKey, CostBasis], prices: dict[tuple[str, date], Decimal]) -> Decimal:
    total = ZERO
    for (_, security_id), basis in state.items():
        if basis.quantity <= 0:
            continue
        price = prices.get((security_id, day))
        if price is None:
            price = basis.avg_price
        total += basis.quantity * price
    return total


def compute_historical_series(
    window_days: int,
    investment_transactions: Iterable[InvestmentTransaction],
    historical_prices: Iterable[SecurityPrice],
    current_holdings: Iterable[Holding],
    current_total_value: Decimal,
    today: date | datetime | str | None = None,
) -> list[HistoricalDataPoint]:
    """Daily portfolio value over the last ``window_days`` days.

    Args:
        window_days: Days of history before today; the series has
            ``window_days + 1`` points, oldest first, ending today.
        investment_transactions: Investment history, any order. Only buys and
            sells dated inside the window are replayed.
        historical_prices: Sparse daily closes.
        current_holdings: Holdings as of today.
        current_total_value: Live valuation; today's point is set to exactly this.
        today: Override for the last day of the window (defaults to the local today).

    Raises:
        ContractViolationError: If ``window_days`` is negative or not an integer,
            or longer than ``MAX_WINDOW_DAYS``.
    """
    if isinstance(window_days, bool) or not isinstance(window_days, int) or window_days < 0:
        raise ContractViolationError(f"window_days must be a non-negative integer, got {window_days!r}")
    if window_days > MAX_WINDOW_DAYS:
        raise ContractViolationError(f"window_days must be at most {MAX_WINDOW_DAYS}, got {window_days}")
    pinned = parse_decimal(current_total_value)
    if pinned is None:
        raise ContractViolationError(f"current_total_value must be a finite number, got {current_total_value!r}")

    end = calendar.to_calendar_day(today) if today is not None else calendar.today()
    start = end - timedelta(days=window_days)

    current_holdings = list(current_holdings)
    prices = _price_map(historical_prices)
    trades = _window_trades(investment_transactions, start, end)

    held_securities = {h.security_id for h in current_holdings} | {t.key[1] for _, t in trades}
    has_prices = any(security_id in held_securities and start <= day <= end for security_id, day in prices)

    days = calendar.day_range(start, end)

    if not trades and not has_prices:
        logger.info(f"No trades or prices in the last {window_days} day(s); extending current value backward")
        flat = max(ZERO, pinned)
        return [HistoricalDataPoint(day, pinned if day == end else flat) for day in days]

    trades_by_day: dict[date, list[Trade]] = defaultdict(list)
    for day, trade in trades:
        trades_by_day[day].append(trade)

    state = seed_from_holdings(current_holdings)
    _unwind_all(state, trades)

    series = []
    for day in days:
        for trade in trades_by_day.get(day, ()):
            apply_trade(state.setdefault(trade.key, CostBasis()), trade)
        if day == end:
            series.append(HistoricalDataPoint(day, pinned))
        else:
            series.append(HistoricalDataPoint(day, max(ZERO, _value_on(day, state, prices))))

    return series
