"""Portfolio service: the engine behind a request-deduplication cache.

Callers fetch an owner's rows from the data store, bundle them in a
:class:`PortfolioData`, and ask the service for balances, holdings, valuations,
a summary or the historical series. Results are cached per owner under explicit
keys (``sparebook:<owner>:<view>``) for ``cache.ttl_seconds``. The engine
functions never see the cache.

Usage::

    service = PortfolioService(config=get_config())
    series = service.historical_series("user-1", data, days=90)
    service.invalidate("user-1")   # after the owner's data changes
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, timedelta
from decimal import Decimal
from typing import Any

from loguru import logger

from sparebook.core.config import Config
from sparebook.core.utils.cache import TTLCache

from . import calendar
from .history import compute_historical_series
from .holdings import compute_holdings
from .ledger import compute_balances
from .models import Account, AccountType, HistoricalDataPoint, Holding, PortfolioData
from .valuation import (
    AccountValuation,
    PortfolioSummary,
    Valuation,
    resolve_portfolio_accounts,
    summarize_portfolio,
    total_portfolio_value,
)


class PortfolioService:
    """Cached access to the valuation engine for many owners."""

    def __init__(
        self,
        cache: TTLCache | None = None,
        config: Config | None = None,
        clock: Callable[[], date] | None = None,
    ):
        """
        Args:
            cache: Cache to use. Built from config when omitted.
            config: Settings for TTL, timezone and default window.
            clock: Returns "today"; defaults to the configured zone's calendar day.
        """
        settings = (config or Config(env_prefix="")).validated()
        self.cache_enabled = settings.cache.enabled
        self.default_window_days = settings.engine.history_window_days
        self.cache = cache if cache is not None else TTLCache(default_ttl=settings.cache.ttl_seconds)
        timezone = settings.engine.timezone
        self._clock = clock or (lambda: calendar.today(timezone))

    def today(self) -> date:
        return self._clock()

    def _cached(self, owner_id: str, view: str, compute: Callable[[], Any]) -> Any:
        if not self.cache_enabled:
            return compute()
        return self.cache.get_or_compute(f"sparebook:{owner_id}:{view}", compute)

    def invalidate(self, owner_id: str) -> int:
        """Forget every cached view for an owner."""
        removed = self.cache.delete_prefix(f"sparebook:{owner_id}:")
        logger.debug(f"Invalidated {removed} cached view(s) for {owner_id}")
        return removed

    # ── Views ─────────────────────────────────────────────────────────

    def balances(self, owner_id: str, data: PortfolioData, as_of: date | None = None) -> dict[str, Decimal]:
        as_of = as_of or self.today()
        return self._cached(
            owner_id,
            f"balances:{as_of.isoformat()}",
            lambda: compute_balances(data.accounts, data.transactions, as_of),
        )

    def holdings(self, owner_id: str, data: PortfolioData, account_id: str | None = None) -> list[Holding]:
        return self._cached(
            owner_id,
            f"holdings:{account_id or 'all'}",
            lambda: compute_holdings(
                account_id, data.positions, data.investment_transactions, data.securities, data.accounts
            ),
        )

    def account_valuations(self, owner_id: str, data: PortfolioData) -> list[AccountValuation]:
        def compute() -> list[AccountValuation]:
            holdings = self.holdings(owner_id, data)
            return resolve_portfolio_accounts(
                _investment_accounts(data, holdings), holdings, data.brokerage_snapshots, data.manual_values
            )

        return self._cached(owner_id, "accounts", compute)

    def total_value(self, owner_id: str, data: PortfolioData) -> Valuation:
        return total_portfolio_value(self.account_valuations(owner_id, data))

    def summary(self, owner_id: str, data: PortfolioData) -> PortfolioSummary:
        today = self.today()

        def compute() -> PortfolioSummary:
            yesterday = today - timedelta(days=1)
            return summarize_portfolio(
                self.holdings(owner_id, data),
                self.total_value(owner_id, data).value,
                [p for p in data.prices if p.date == yesterday],
            )

        return self._cached(owner_id, f"summary:{today.isoformat()}", compute)

    def historical_series(
        self,
        owner_id: str,
        data: PortfolioData,
        days: int | None = None,
    ) -> list[HistoricalDataPoint]:
        days = self.default_window_days if days is None else days
        today = self.today()

        def compute() -> list[HistoricalDataPoint]:
            return compute_historical_series(
                days,
                data.investment_transactions,
                data.prices,
                self.holdings(owner_id, data),
                self.total_value(owner_id, data).value,
                today=today,
            )

        return self._cached(owner_id, f"historical:{days}:{today.isoformat()}", compute)


def _investment_accounts(data: PortfolioData, holdings: list[Holding]) -> list[Account]:
    """Investment accounts on file, plus any account only known from holdings or valuations."""
    accounts = list(data.investment_accounts)
    known = {a.id for a in data.accounts}
    extra_ids = [h.account_id for h in holdings] + list(data.brokerage_snapshots) + list(data.manual_values)
    for account_id in dict.fromkeys(extra_ids):
        if account_id not in known:
            known.add(account_id)
            accounts.append(Account(id=account_id, type=AccountType.INVESTMENT))
    return accounts
