"""
Current holdings per security and account.

Two sources, never merged:

1. Position snapshots synced from a brokerage. When any exist for the requested
   scope they are authoritative and mapped straight to holdings.
2. Otherwise, a replay of buy/sell transactions in ascending date order.

Cost basis uses the average-cost method: every unit of a security in an account
shares one blended purchase price. Sells reduce quantity and scale the book
value down in proportion, leaving the average unchanged. Individual lots
(FIFO/LIFO) are not tracked.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from loguru import logger

from sparebook.core.types import AccountId, SecurityId

from .models import (
    HUNDRED,
    ZERO,
    Account,
    Holding,
    InvestmentTransaction,
    InvestmentTransactionType,
    Position,
    Security,
    parse_decimal,
)
from .portfolio import map_class_to_sector, normalize_asset_type

UNKNOWN_SECURITY_NAME = "Unknown"
UNKNOWN_ACCOUNT_NAME = "Unknown Account"

HoldingKey = tuple[AccountId, SecurityId]


@dataclass
class CostBasis:
    """Running average-cost state for one security in one account."""

    quantity: Decimal = ZERO
    avg_price: Decimal = ZERO
    book_value: Decimal = ZERO

    def buy(self, quantity: Decimal, price: Decimal) -> None:
        book_value = self.book_value + quantity * price
        new_quantity = self.quantity + quantity
        self.avg_price = book_value / new_quantity if new_quantity > 0 else ZERO
        self.book_value = book_value
        self.quantity = new_quantity

    def sell(self, quantity: Decimal) -> None:
        remaining = max(ZERO, self.quantity - quantity)
        if remaining > 0:
            self.book_value = self.book_value * (remaining / (remaining + quantity))
        else:
            self.book_value = ZERO
            self.avg_price = ZERO
        self.quantity = remaining


@dataclass
class Trade:
    """A validated buy or sell, ready to apply to a :class:`CostBasis`."""

    key: HoldingKey
    type: InvestmentTransactionType
    quantity: Decimal
    price: Decimal


def to_trade(tx: InvestmentTransaction) -> Trade | None:
    """Validate a transaction for the quantity math.

    Returns None for cash-only events (dividends, interest, transfers) and for
    trades that cannot be applied; the latter are logged.
    """
    if not tx.is_trade:
        return None
    if not tx.security_id:
        logger.warning(f"Investment transaction {tx.id}: {tx.type} without a security, skipping")
        return None

    quantity = parse_decimal(tx.quantity)
    if quantity is None or quantity <= 0:
        logger.warning(f"Investment transaction {tx.id}: invalid quantity {tx.quantity!r}, skipping")
        return None

    blank = tx.price is None or (isinstance(tx.price, str) and not tx.price.strip())
    price = ZERO if blank else parse_decimal(tx.price)
    if price is None or price < 0:
        if tx.type == InvestmentTransactionType.SELL:
            # A sell's price only feeds the last quote; the units still leave
            logger.warning(f"Investment transaction {tx.id}: invalid price {tx.price!r}, treating as unpriced")
            price = ZERO
        else:
            logger.warning(f"Investment transaction {tx.id}: invalid price {tx.price!r}, skipping")
            return None

    return Trade(key=(tx.account_id, tx.security_id), type=tx.type, quantity=quantity, price=price)


def apply_trade(basis: CostBasis, trade: Trade) -> None:
    match trade.type:
        case InvestmentTransactionType.BUY:
            basis.buy(trade.quantity, trade.price)
        case InvestmentTransactionType.SELL:
            basis.sell(trade.quantity)


_TRADE_RANK = {InvestmentTransactionType.BUY: 0, InvestmentTransactionType.SELL: 1}


def chronological(transactions: Iterable[InvestmentTransaction]) -> list[InvestmentTransaction]:
    """Sort for replay: by day, buys before sells on the same day, then by id.

    The full key makes the replay independent of input order.
    """
    return sorted(transactions, key=lambda tx: (tx.date, _TRADE_RANK.get(tx.type, 2), str(tx.id)))


# ── Enrichment ────────────────────────────────────────────────────────


class _Directory:
    """Security and account lookups with display fallbacks."""

    def __init__(self, securities: Iterable[Security], accounts: Iterable[Account]):
        self.securities = {s.id: s for s in securities}
        self.account_names = {a.id: a.name for a in accounts}
        self._reported: set[str] = set()

    def describe(self, security_id: str) -> tuple[str, str, str, str]:
        """(symbol, name, asset_type, sector) for a security."""
        security = self.securities.get(security_id)
        if security is None:
            if security_id not in self._reported:
                self._reported.add(security_id)
                logger.warning(f"Security {security_id} not found, showing as {UNKNOWN_SECURITY_NAME}")
            return "", UNKNOWN_SECURITY_NAME, normalize_asset_type(None), map_class_to_sector(None)

        asset_type = normalize_asset_type(security.asset_class)
        return (
            security.symbol,
            security.name or security.symbol or UNKNOWN_SECURITY_NAME,
            asset_type,
            security.sector or map_class_to_sector(asset_type, security.symbol),
        )

    def account_name(self, account_id: str) -> str:
        return self.account_names.get(account_id) or UNKNOWN_ACCOUNT_NAME


def _pnl_percent(pnl: Decimal, book_value: Decimal) -> Decimal:
    return pnl / book_value * HUNDRED if book_value > 0 else ZERO


def _amount(value) -> Decimal:
    return parse_decimal(value) or ZERO


# ── Sources ───────────────────────────────────────────────────────────


def holdings_from_positions(
    positions: Iterable[Position],
    securities: Iterable[Security],
    accounts: Iterable[Account],
) -> list[Holding]:
    """Map position snapshots to holdings as-is; closed positions are dropped."""
    directory = _Directory(securities, accounts)
    holdings = []
    for position in positions:
        quantity = _amount(position.open_quantity)
        if quantity <= 0:
            continue
        symbol, name, asset_type, sector = directory.describe(position.security_id)
        book_value = _amount(position.total_cost)
        pnl = _amount(position.open_pnl)
        holdings.append(
            Holding(
                security_id=position.security_id,
                account_id=position.account_id,
                symbol=symbol,
                name=name,
                asset_type=asset_type,
                sector=sector,
                quantity=quantity,
                avg_price=_amount(position.average_entry_price),
                book_value=book_value,
                last_price=_amount(position.current_price),
                market_value=_amount(position.current_market_value),
                unrealized_pnl=pnl,
                unrealized_pnl_percent=_pnl_percent(pnl, book_value),
                account_name=directory.account_name(position.account_id),
            )
        )
    return holdings


def replay_holdings(
    transactions: Iterable[InvestmentTransaction],
    securities: Iterable[Security],
    accounts: Iterable[Account],
) -> list[Holding]:
    """Rebuild holdings from buy/sell history.

    Market value uses the price of the latest trade that carried a positive
    price, which stands in for a live quote.
    """
    directory = _Directory(securities, accounts)
    bases: dict[HoldingKey, CostBasis] = {}
    last_prices: dict[HoldingKey, Decimal] = {}

    for tx in chronological(transactions):
        trade = to_trade(tx)
        if trade is None:
            continue
        apply_trade(bases.setdefault(trade.key, CostBasis()), trade)
        if trade.price > 0:
            last_prices[trade.key] = trade.price

    holdings = []
    for (account_id, security_id), basis in bases.items():
        if basis.quantity <= 0:
            continue
        symbol, name, asset_type, sector = directory.describe(security_id)
        last_price = last_prices.get((account_id, security_id), ZERO)
        market_value = basis.quantity * last_price
        pnl = market_value - basis.book_value
        holdings.append(
            Holding(
                security_id=security_id,
                account_id=account_id,
                symbol=symbol,
                name=name,
                asset_type=asset_type,
                sector=sector,
                quantity=basis.quantity,
                avg_price=basis.avg_price,
                book_value=basis.book_value,
                last_price=last_price,
                market_value=market_value,
                unrealized_pnl=pnl,
                unrealized_pnl_percent=_pnl_percent(pnl, basis.book_value),
                account_name=directory.account_name(account_id),
            )
        )
    return holdings


def compute_holdings(
    account_id: str | None,
    positions: Iterable[Position] | None,
    investment_transactions: Iterable[InvestmentTransaction] | None,
    securities: Iterable[Security] | None = None,
    accounts: Iterable[Account] | None = None,
) -> list[Holding]:
    """Current holdings, from position snapshots when there are any, else from transactions.

    Args:
        account_id: Restrict to one account, or None for every account.
        positions: Position snapshots (may be empty or None).
        investment_transactions: Raw investment history, any order.
        securities: Reference data for display fields.
        accounts: Accounts for display names.
    """
    securities = list(securities or [])
    accounts = list(accounts or [])

    scoped_positions = [
        p
        for p in positions or []
        if (account_id is None or p.account_id == account_id) and _amount(p.open_quantity) > 0
    ]
    if scoped_positions:
        logger.debug(f"Holdings from {len(scoped_positions)} position snapshot(s)")
        return holdings_from_positions(scoped_positions, securities, accounts)

    scoped_transactions = [
        tx for tx in investment_transactions or [] if account_id is None or tx.account_id == account_id
    ]
    logger.debug(f"No position snapshots, replaying {len(scoped_transactions)} investment transaction(s)")
    return replay_holdings(scoped_transactions, securities, accounts)
