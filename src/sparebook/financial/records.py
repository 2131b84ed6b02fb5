"""Boundary loaders: raw data-store rows -> domain records.

Rows come from the data store as loosely typed dicts with camelCase keys
(``accountId``, ``initialBalance``). The ``parse_*`` functions turn one row into
a tagged domain record or raise :class:`InvalidRecordError`. The ``load_*``
functions apply a parser to a batch, logging and skipping bad rows so one
corrupt record never blocks the rest.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from decimal import Decimal
from typing import Any, TypeVar

from loguru import logger

from sparebook.core.exceptions import InvalidRecordError
from sparebook.core.types import Row

from .models import (
    Account,
    BrokerageSnapshot,
    InvestmentTransaction,
    LedgerTransaction,
    PortfolioData,
    Position,
    Security,
    SecurityPrice,
    parse_decimal,
)

T = TypeVar("T")

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def _snake(key: str) -> str:
    return _CAMEL_RE.sub("_", key).lower()


def _normalize(row: Row) -> dict[str, Any]:
    """Accept camelCase or snake_case keys."""
    if not isinstance(row, dict):
        raise InvalidRecordError(f"Expected a mapping, got {type(row).__name__}")
    return {_snake(str(k)): v for k, v in row.items()}


def _require(data: dict[str, Any], key: str, kind: str) -> Any:
    value = data.get(key)
    if value is None or value == "":
        raise InvalidRecordError(f"{kind} row missing {key}", record_id=_id_of(data))
    return value


def _id_of(data: dict[str, Any]) -> str | None:
    value = data.get("id")
    return str(value) if value is not None else None


def _optional_str(value: Any) -> str | None:
    return str(value) if value not in (None, "") else None


def _build(kind: str, data: dict[str, Any], factory: Callable[[], T]) -> T:
    try:
        return factory()
    except ValueError as e:
        raise InvalidRecordError(f"Invalid {kind} row: {e}", record_id=_id_of(data)) from e


def parse_account(row: Row) -> Account:
    data = _normalize(row)
    return _build(
        "account",
        data,
        lambda: Account(
            id=str(_require(data, "id", "account")),
            type=str(_require(data, "type", "account")).lower(),
            initial_balance=data.get("initial_balance"),
            currency=data.get("currency") or "USD",
            name=data.get("name") or "",
        ),
    )


def parse_ledger_transaction(row: Row) -> LedgerTransaction:
    data = _normalize(row)
    return _build(
        "transaction",
        data,
        lambda: LedgerTransaction(
            id=str(_require(data, "id", "transaction")),
            account_id=str(_require(data, "account_id", "transaction")),
            type=str(_require(data, "type", "transaction")).lower(),
            amount=data.get("amount"),
            date=_require(data, "date", "transaction"),
            transfer_to_id=_optional_str(data.get("transfer_to_id")),
            transfer_from_id=_optional_str(data.get("transfer_from_id")),
            description=data.get("description") or "",
        ),
    )


def parse_investment_transaction(row: Row) -> InvestmentTransaction:
    data = _normalize(row)
    fees = data.get("fees")
    return _build(
        "investment transaction",
        data,
        lambda: InvestmentTransaction(
            id=str(_require(data, "id", "investment transaction")),
            account_id=str(_require(data, "account_id", "investment transaction")),
            type=str(_require(data, "type", "investment transaction")).lower(),
            date=_require(data, "date", "investment transaction"),
            security_id=_optional_str(data.get("security_id")),
            quantity=data.get("quantity"),
            price=data.get("price"),
            fees=Decimal("0") if fees in (None, "") else fees,
            notes=data.get("notes"),
        ),
    )


def parse_security(row: Row) -> Security:
    data = _normalize(row)
    return _build(
        "security",
        data,
        lambda: Security(
            id=str(_require(data, "id", "security")),
            symbol=str(data.get("symbol") or ""),
            name=str(data.get("name") or ""),
            asset_class=_optional_str(data.get("class") or data.get("asset_class")),
            sector=_optional_str(data.get("sector")),
        ),
    )


def parse_security_price(row: Row) -> SecurityPrice:
    data = _normalize(row)
    return _build(
        "security price",
        data,
        lambda: SecurityPrice(
            security_id=str(_require(data, "security_id", "security price")),
            date=_require(data, "date", "security price"),
            price=data.get("price"),
        ),
    )


def parse_position(row: Row) -> Position:
    data = _normalize(row)
    return _build(
        "position",
        data,
        lambda: Position(
            security_id=str(_require(data, "security_id", "position")),
            account_id=str(_require(data, "account_id", "position")),
            open_quantity=data.get("open_quantity"),
            average_entry_price=data.get("average_entry_price"),
            total_cost=data.get("total_cost"),
            current_price=data.get("current_price"),
            current_market_value=data.get("current_market_value"),
            open_pnl=data.get("open_pnl"),
            last_updated_at=_optional_str(data.get("last_updated_at")),
        ),
    )


def parse_brokerage_snapshot(row: Row) -> BrokerageSnapshot:
    data = _normalize(row)
    return _build(
        "brokerage snapshot",
        data,
        lambda: BrokerageSnapshot(
            total_equity=data.get("total_equity"),
            market_value=data.get("market_value"),
            cash=data.get("cash"),
        ),
    )


def load_records(rows: Iterable[Row] | None, parser: Callable[[Row], T], kind: str = "record") -> list[T]:
    """Parse every row, skipping (and logging) the ones that fail."""
    records: list[T] = []
    skipped = 0
    for row in rows or []:
        try:
            records.append(parser(row))
        except InvalidRecordError as e:
            skipped += 1
            logger.warning(f"Skipping {kind} {e.record_id or '<no id>'}: {e}")
    if skipped:
        logger.warning(f"Skipped {skipped} invalid {kind} row(s)")
    return records


def load_accounts(rows: Iterable[Row] | None) -> list[Account]:
    return load_records(rows, parse_account, "account")


def load_ledger_transactions(rows: Iterable[Row] | None) -> list[LedgerTransaction]:
    return load_records(rows, parse_ledger_transaction, "transaction")


def load_investment_transactions(rows: Iterable[Row] | None) -> list[InvestmentTransaction]:
    return load_records(rows, parse_investment_transaction, "investment transaction")


def load_securities(rows: Iterable[Row] | None) -> list[Security]:
    return load_records(rows, parse_security, "security")


def load_security_prices(rows: Iterable[Row] | None) -> list[SecurityPrice]:
    return load_records(rows, parse_security_price, "security price")


def load_positions(rows: Iterable[Row] | None) -> list[Position]:
    return load_records(rows, parse_position, "position")


def load_brokerage_snapshots(rows: dict[str, Row] | None) -> dict[str, BrokerageSnapshot]:
    """Snapshots keyed by account id."""
    snapshots: dict[str, BrokerageSnapshot] = {}
    for account_id, row in (rows or {}).items():
        try:
            snapshots[str(account_id)] = parse_brokerage_snapshot(row)
        except InvalidRecordError as e:
            logger.warning(f"Skipping brokerage snapshot for account {account_id}: {e}")
    return snapshots


def load_manual_values(values: dict[str, Any] | None) -> dict[str, Decimal]:
    """User-entered account totals keyed by account id."""
    manual: dict[str, Decimal] = {}
    for account_id, raw in (values or {}).items():
        value = parse_decimal(raw)
        if value is None:
            logger.warning(f"Skipping manual value for account {account_id}: not a finite number ({raw!r})")
            continue
        manual[str(account_id)] = value
    return manual


def load_portfolio_data(payload: dict[str, Any]) -> PortfolioData:
    """Build a :class:`PortfolioData` bundle from an export dict (camelCase keys)."""
    data = _normalize(payload)
    return PortfolioData(
        accounts=load_accounts(data.get("accounts")),
        transactions=load_ledger_transactions(data.get("transactions")),
        investment_transactions=load_investment_transactions(data.get("investment_transactions")),
        positions=load_positions(data.get("positions")),
        securities=load_securities(data.get("securities")),
        prices=load_security_prices(data.get("prices")),
        brokerage_snapshots=load_brokerage_snapshots(data.get("brokerage_snapshots")),
        manual_values=load_manual_values(data.get("manual_values")),
    )
