"""Core financial data models.

Tagged representations of the rows the data store hands us (accounts, ledger
transactions, investment transactions, securities, prices, position snapshots)
and of the values the engine derives from them (holdings, historical points).

Transaction amounts are kept exactly as they arrived. They may be numbers or
strings, and the engine parses them with :func:`parse_decimal`, skipping rows
whose amount is not a finite number. Everything else is coerced on construction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum, StrEnum
from typing import Any

from loguru import logger

from sparebook.core.types import RawAmount

from .calendar import to_calendar_day

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def parse_decimal(value: Any) -> Decimal | None:
    """Parse a stored amount into a ``Decimal``.

    Returns None for missing values, booleans, unparseable strings, NaN and
    infinities. Floats go through ``str`` so ``0.1`` stays ``Decimal("0.1")``.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int | float):
        result = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            return None
        try:
            result = Decimal(text)
        except InvalidOperation:
            return None
    else:
        return None
    return result if result.is_finite() else None


def _optional_decimal(value: Any, field_name: str) -> Decimal | None:
    if value is None:
        return None
    parsed = parse_decimal(value)
    if parsed is None:
        raise ValueError(f"{field_name} is not a finite number: {value!r}")
    return parsed


# ── Type tags ─────────────────────────────────────────────────────────


class AccountType(StrEnum):
    CHECKING = "checking"
    SAVINGS = "savings"
    CREDIT = "credit"
    INVESTMENT = "investment"


# Account types whose balance starts from an initial balance
BALANCE_ACCOUNT_TYPES = {AccountType.CHECKING, AccountType.SAVINGS, AccountType.INVESTMENT}


class LedgerTransactionType(StrEnum):
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"


class Direction(Enum):
    """Which way a ledger row moves an account's balance."""

    CREDIT = 1
    DEBIT = -1


class InvestmentTransactionType(StrEnum):
    BUY = "buy"
    SELL = "sell"
    DIVIDEND = "dividend"
    INTEREST = "interest"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"


# Only these move quantity held; the rest are cash-only events
TRADE_TYPES = {InvestmentTransactionType.BUY, InvestmentTransactionType.SELL}


# ── Input records ─────────────────────────────────────────────────────


@dataclass
class Account:
    """A money account.

    Attributes:
        id: Unique identifier.
        type: One of checking, savings, credit, investment.
        initial_balance: Opening balance. Always None for credit accounts.
        currency: ISO currency code.
        name: Human-readable name.
    """

    id: str
    type: AccountType
    initial_balance: Decimal | None = None
    currency: str = "USD"
    name: str = ""

    def __post_init__(self):
        if not self.id:
            raise ValueError("Account id cannot be empty")
        self.type = AccountType(self.type)
        self.initial_balance = _optional_decimal(self.initial_balance, "initial_balance")
        if self.type not in BALANCE_ACCOUNT_TYPES and self.initial_balance is not None:
            logger.warning(f"Account {self.id}: {self.type} accounts carry no initial balance, ignoring it")
            self.initial_balance = None


@dataclass
class LedgerTransaction:
    """A dated cash movement against one account.

    ``amount`` is a magnitude; the sign comes from ``type``. A transfer between
    two accounts is two rows: the outgoing leg links forward with
    ``transfer_to_id`` and the incoming leg links back with ``transfer_from_id``.
    """

    id: str
    account_id: str
    type: LedgerTransactionType
    amount: RawAmount
    date: date
    transfer_to_id: str | None = None
    transfer_from_id: str | None = None
    description: str = ""

    def __post_init__(self):
        self.type = LedgerTransactionType(self.type)
        self.date = to_calendar_day(self.date)

    @property
    def direction(self) -> Direction | None:
        """Credit or debit, or None for a transfer row with no link to say which."""
        match self.type:
            case LedgerTransactionType.INCOME:
                return Direction.CREDIT
            case LedgerTransactionType.EXPENSE:
                return Direction.DEBIT
            case LedgerTransactionType.TRANSFER:
                if self.transfer_to_id:
                    return Direction.DEBIT
                if self.transfer_from_id:
                    return Direction.CREDIT
                return None

    @property
    def is_transfer_leg(self) -> bool:
        return (
            self.type == LedgerTransactionType.TRANSFER
            or bool(self.transfer_to_id)
            or bool(self.transfer_from_id)
        )


@dataclass
class Security:
    """Reference data for a tradable security."""

    id: str
    symbol: str = ""
    name: str = ""
    asset_class: str | None = None
    sector: str | None = None


@dataclass
class InvestmentTransaction:
    """A buy, sell or cash event in an investment account.

    ``quantity`` and ``price`` stay raw; the holdings replay validates them.
    ``security_id`` is None for pure cash movements.
    """

    id: str
    account_id: str
    type: InvestmentTransactionType
    date: date
    security_id: str | None = None
    quantity: RawAmount = None
    price: RawAmount = None
    fees: Decimal = ZERO
    notes: str | None = None

    def __post_init__(self):
        self.type = InvestmentTransactionType(self.type)
        self.date = to_calendar_day(self.date)
        fees = _optional_decimal(self.fees, "fees")
        if fees is not None and fees < 0:
            raise ValueError(f"fees cannot be negative: {fees}")
        self.fees = fees if fees is not None else ZERO

    @property
    def is_trade(self) -> bool:
        return self.type in TRADE_TYPES


@dataclass
class Position:
    """Externally maintained snapshot of one security held in one account.

    Numeric fields are raw, as synced from the brokerage; missing values read as 0.
    """

    security_id: str
    account_id: str
    open_quantity: RawAmount = None
    average_entry_price: RawAmount = None
    total_cost: RawAmount = None
    current_price: RawAmount = None
    current_market_value: RawAmount = None
    open_pnl: RawAmount = None
    last_updated_at: str | None = None


@dataclass
class SecurityPrice:
    """Closing price of a security on a calendar day."""

    security_id: str
    date: date
    price: RawAmount

    def __post_init__(self):
        self.date = to_calendar_day(self.date)


@dataclass
class BrokerageSnapshot:
    """Balances reported by a linked brokerage for one account."""

    total_equity: Decimal | None = None
    market_value: Decimal | None = None
    cash: Decimal | None = None

    def __post_init__(self):
        self.total_equity = _optional_decimal(self.total_equity, "total_equity")
        self.market_value = _optional_decimal(self.market_value, "market_value")
        self.cash = _optional_decimal(self.cash, "cash")

    @property
    def is_empty(self) -> bool:
        return self.total_equity is None and self.market_value is None and self.cash is None


# ── Derived values ────────────────────────────────────────────────────


@dataclass
class Holding:
    """Current position in one security within one account.

    Attributes:
        quantity: Units held.
        avg_price: Blended average cost per unit.
        book_value: Total cost basis (quantity * avg_price).
        last_price: Latest known price per unit.
        market_value: quantity * last_price.
        unrealized_pnl: market_value - book_value.
        unrealized_pnl_percent: unrealized_pnl / book_value * 100, or 0 with no basis.
    """

    security_id: str
    account_id: str
    symbol: str
    name: str
    asset_type: str
    sector: str
    quantity: Decimal
    avg_price: Decimal
    book_value: Decimal
    last_price: Decimal
    market_value: Decimal
    unrealized_pnl: Decimal
    unrealized_pnl_percent: Decimal
    account_name: str = "Unknown Account"

    def to_dict(self) -> dict:
        """Convert to a JSON-friendly dict."""
        return {
            "securityId": self.security_id,
            "accountId": self.account_id,
            "symbol": self.symbol,
            "name": self.name,
            "assetType": self.asset_type,
            "sector": self.sector,
            "quantity": float(self.quantity),
            "avgPrice": float(self.avg_price),
            "bookValue": float(self.book_value),
            "lastPrice": float(self.last_price),
            "marketValue": float(self.market_value),
            "unrealizedPnL": float(self.unrealized_pnl),
            "unrealizedPnLPercent": float(self.unrealized_pnl_percent),
            "accountName": self.account_name,
        }


@dataclass(frozen=True)
class HistoricalDataPoint:
    """Total portfolio value on one calendar day."""

    date: date
    value: Decimal

    def to_dict(self) -> dict:
        return {"date": self.date.isoformat(), "value": float(self.value)}


@dataclass
class PortfolioData:
    """Everything a caller fetched from the data store for one owner."""

    accounts: list[Account] = field(default_factory=list)
    transactions: list[LedgerTransaction] = field(default_factory=list)
    investment_transactions: list[InvestmentTransaction] = field(default_factory=list)
    positions: list[Position] = field(default_factory=list)
    securities: list[Security] = field(default_factory=list)
    prices: list[SecurityPrice] = field(default_factory=list)
    brokerage_snapshots: dict[str, BrokerageSnapshot] = field(default_factory=dict)
    manual_values: dict[str, Decimal] = field(default_factory=dict)

    @property
    def investment_accounts(self) -> list[Account]:
        return [a for a in self.accounts if a.type == AccountType.INVESTMENT]
