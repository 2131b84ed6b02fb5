"""Ledger balance and portfolio valuation engine.

Pure functions over data the caller has already fetched: no I/O, no shared
state, safe to call from any number of threads at once.
"""

from .calendar import DayOrder, compare_calendar_days, to_calendar_day
from .history import compute_historical_series, holdings_at_window_start
from .holdings import compute_holdings, holdings_from_positions, replay_holdings
from .ledger import (
    balance_by_type,
    checking_savings_breakdown,
    compute_balance,
    compute_balance_change,
    compute_balances,
    compute_total_balance,
    last_month_balance_from_current,
)
from .models import (
    Account,
    AccountType,
    BrokerageSnapshot,
    HistoricalDataPoint,
    Holding,
    InvestmentTransaction,
    InvestmentTransactionType,
    LedgerTransaction,
    LedgerTransactionType,
    PortfolioData,
    Position,
    Security,
    SecurityPrice,
    parse_decimal,
)
from .portfolio import calculate_portfolio_metrics
from .valuation import (
    AccountValuation,
    PortfolioSummary,
    Valuation,
    ValuationSource,
    resolve_investment_account_value,
    resolve_portfolio_accounts,
    summarize_portfolio,
)

__all__ = [
    "Account",
    "AccountType",
    "AccountValuation",
    "BrokerageSnapshot",
    "DayOrder",
    "HistoricalDataPoint",
    "Holding",
    "InvestmentTransaction",
    "InvestmentTransactionType",
    "LedgerTransaction",
    "LedgerTransactionType",
    "PortfolioData",
    "PortfolioSummary",
    "Position",
    "Security",
    "SecurityPrice",
    "Valuation",
    "ValuationSource",
    "balance_by_type",
    "calculate_portfolio_metrics",
    "checking_savings_breakdown",
    "compare_calendar_days",
    "compute_balance",
    "compute_balance_change",
    "compute_balances",
    "compute_historical_series",
    "compute_holdings",
    "compute_total_balance",
    "holdings_at_window_start",
    "holdings_from_positions",
    "last_month_balance_from_current",
    "parse_decimal",
    "replay_holdings",
    "resolve_investment_account_value",
    "resolve_portfolio_accounts",
    "summarize_portfolio",
    "to_calendar_day",
]
