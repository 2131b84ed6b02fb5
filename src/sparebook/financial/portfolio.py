"""Portfolio analytics over a holdings list.

Totals, returns, and allocation breakdowns by sector, asset type and account,
plus the display normalization for asset types and the sector fallback used
when a security has no sector on file.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from .models import HUNDRED, ZERO, Holding

# ── Asset type / sector normalization ─────────────────────────────────

DEFAULT_ASSET_TYPE = "Stock"
DEFAULT_SECTOR = "Technology"

_ASSET_TYPE_ALIASES = {
    "stock": "Stock",
    "etf": "ETF",
    "crypto": "Crypto",
    "cryptocurrency": "Crypto",
    "fund": "Fund",
    "mutualfund": "Fund",
    "mutual fund": "Fund",
    "bond": "Bond",
    "reit": "REIT",
}

_CANONICAL_ASSET_TYPES = {"Stock", "ETF", "Crypto", "Fund", "Bond", "REIT"}

_SECTOR_BY_SYMBOL = {
    "Technology": {"AAPL", "MSFT", "GOOGL", "GOOG", "AMZN", "META", "NVDA", "TSLA", "NFLX", "AMD", "INTC", "CRM",
                   "ORCL", "ADBE", "CSCO"},
    "Finance": {"JPM", "BAC", "WFC", "C", "GS", "MS", "V", "MA", "AXP", "BLK", "SCHW"},
    "Healthcare": {"JNJ", "PFE", "UNH", "ABBV", "MRK", "TMO", "ABT", "CVS", "CI", "HUM"},
    "Consumer": {"WMT", "HD", "MCD", "NKE", "SBUX", "TGT", "LOW", "COST"},
    "Energy": {"XOM", "CVX", "COP", "SLB", "EOG", "MPC", "VLO"},
}


def normalize_asset_type(asset_type: str | None) -> str:
    """Map free-form asset class strings ("etf", "Mutual Fund", "STOCK") to display form."""
    if not asset_type or not asset_type.strip():
        return DEFAULT_ASSET_TYPE
    normalized = asset_type.strip()
    alias = _ASSET_TYPE_ALIASES.get(normalized.lower())
    if alias:
        return alias
    if normalized in _CANONICAL_ASSET_TYPES:
        return normalized
    return normalized[0].upper() + normalized[1:].lower()


def map_class_to_sector(asset_class: str | None, symbol: str | None = None) -> str:
    """Best-guess sector for a security that has none on file."""
    asset_type = normalize_asset_type(asset_class)
    if asset_type == "Crypto":
        return "Cryptocurrency"
    if asset_type == "ETF":
        return "Broad Market"
    if asset_type == "Fund":
        return "Balanced"
    if asset_type == "Stock" and symbol:
        upper = symbol.upper()
        for sector, symbols in _SECTOR_BY_SYMBOL.items():
            if upper in symbols:
                return sector
    return DEFAULT_SECTOR


# ── Metrics ───────────────────────────────────────────────────────────


@dataclass
class PortfolioMetrics:
    total_value: Decimal
    total_cost: Decimal
    total_return: Decimal
    total_return_percent: Decimal
    total_pnl: Decimal
    holdings_count: int


@dataclass
class Allocation:
    """One slice of an allocation breakdown."""

    key: str
    value: Decimal
    percent: Decimal
    count: int


def calculate_return(current_value: Decimal, cost_basis: Decimal) -> Decimal:
    """Percent return on cost; 0 when there is no cost basis."""
    if cost_basis == 0:
        return ZERO
    return (current_value - cost_basis) / cost_basis * HUNDRED


def calculate_portfolio_metrics(holdings: Iterable[Holding]) -> PortfolioMetrics:
    holdings = list(holdings)
    total_value = sum((h.market_value for h in holdings), ZERO)
    total_cost = sum((h.book_value for h in holdings), ZERO)
    total_return = total_value - total_cost
    return PortfolioMetrics(
        total_value=total_value,
        total_cost=total_cost,
        total_return=total_return,
        total_return_percent=total_return / total_cost * HUNDRED if total_cost > 0 else ZERO,
        total_pnl=sum((h.unrealized_pnl for h in holdings), ZERO),
        holdings_count=len(holdings),
    )


def group_holdings_by_type(holdings: Iterable[Holding]) -> dict[str, list[Holding]]:
    groups: dict[str, list[Holding]] = {}
    for h in holdings:
        groups.setdefault(h.asset_type, []).append(h)
    return groups


def group_holdings_by_sector(holdings: Iterable[Holding]) -> dict[str, list[Holding]]:
    groups: dict[str, list[Holding]] = {}
    for h in holdings:
        groups.setdefault(h.sector, []).append(h)
    return groups


def _allocation(groups: dict[str, list[Holding]], total_value: Decimal) -> list[Allocation]:
    slices = []
    for key, members in groups.items():
        value = sum((h.market_value for h in members), ZERO)
        percent = value / total_value * HUNDRED if total_value > 0 else ZERO
        slices.append(Allocation(key=key, value=value, percent=percent, count=len(members)))
    return sorted(slices, key=lambda s: (-s.value, s.key))


def calculate_sector_allocation(holdings: Iterable[Holding]) -> list[Allocation]:
    holdings = list(holdings)
    total = sum((h.market_value for h in holdings), ZERO)
    return _allocation(group_holdings_by_sector(holdings), total)


def calculate_asset_type_allocation(holdings: Iterable[Holding]) -> list[Allocation]:
    holdings = list(holdings)
    total = sum((h.market_value for h in holdings), ZERO)
    return _allocation(group_holdings_by_type(holdings), total)


def calculate_account_allocation(holdings: Iterable[Holding], account_ids: Iterable[str]) -> list[Allocation]:
    """Market value per account, in the order the accounts were given."""
    holdings = list(holdings)
    total = sum((h.market_value for h in holdings), ZERO)
    slices = []
    for account_id in account_ids:
        members = [h for h in holdings if h.account_id == account_id]
        value = sum((h.market_value for h in members), ZERO)
        percent = value / total * HUNDRED if total > 0 else ZERO
        slices.append(Allocation(key=account_id, value=value, percent=percent, count=len(members)))
    return slices


def unique_sectors(holdings: Iterable[Holding]) -> list[str]:
    return sorted({h.sector for h in holdings})


def unique_asset_types(holdings: Iterable[Holding]) -> list[str]:
    return sorted({h.asset_type for h in holdings})


def filter_holdings(
    holdings: Iterable[Holding],
    asset_type: str | None = None,
    sector: str | None = None,
) -> list[Holding]:
    """Keep holdings matching every filter given; None means no filter."""
    return [
        h
        for h in holdings
        if (asset_type is None or h.asset_type == asset_type) and (sector is None or h.sector == sector)
    ]
