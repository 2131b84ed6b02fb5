"""sparebook balances: account balances as of a day."""

from __future__ import annotations

import click

from .common import DATA_FILE, emit, load_data


@click.command()
@DATA_FILE
@click.option("--as-of", "as_of", default=None, help="Cutoff day (YYYY-MM-DD). Defaults to today.")
def balances(data_file: str, as_of: str | None) -> None:
    """Replay ledger transactions into per-account balances."""
    from sparebook.financial.calendar import to_calendar_day
    from sparebook.financial.ledger import balance_by_type, compute_balances

    data = load_data(data_file)
    try:
        cutoff = to_calendar_day(as_of) if as_of else None
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--as-of") from e

    result = compute_balances(data.accounts, data.transactions, cutoff)
    emit(
        {
            "balances": result,
            "byType": balance_by_type(result, data.accounts),
            "total": sum(result.values()),
        }
    )
