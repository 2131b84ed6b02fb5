"""sparebook holdings, valuation, summary and history: portfolio views."""

from __future__ import annotations

import click

from sparebook.core.exceptions import ConfigurationError
from sparebook.financial.history import MAX_WINDOW_DAYS

from .common import DATA_FILE, emit, load_data

OWNER = "cli"


def _service(ctx: click.Context, today: str | None = None):
    from sparebook.financial.calendar import to_calendar_day
    from sparebook.financial.service import PortfolioService

    clock = None
    if today:
        try:
            fixed = to_calendar_day(today)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--today") from e
        clock = lambda: fixed  # noqa: E731
    try:
        return PortfolioService(config=ctx.obj, clock=clock)
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e


@click.command()
@DATA_FILE
@click.option("--account", "account_id", default=None, help="Only this account.")
@click.pass_context
def holdings(ctx: click.Context, data_file: str, account_id: str | None) -> None:
    """Current holdings, from position snapshots or transaction replay."""
    data = load_data(data_file)
    emit([h.to_dict() for h in _service(ctx).holdings(OWNER, data, account_id)])


@click.command()
@DATA_FILE
@click.pass_context
def valuation(ctx: click.Context, data_file: str) -> None:
    """Resolved value of each investment account and where it came from."""
    data = load_data(data_file)
    service = _service(ctx)
    accounts = service.account_valuations(OWNER, data)
    total = service.total_value(OWNER, data)
    emit(
        {
            "accounts": [a.to_dict() for a in accounts],
            "total": float(total.value) if total.has_source else None,
            "source": str(total.source),
        }
    )


@click.command()
@DATA_FILE
@click.option("--today", default=None, help="Treat this day (YYYY-MM-DD) as today.")
@click.pass_context
def summary(ctx: click.Context, data_file: str, today: str | None) -> None:
    """Portfolio totals, return, and day change."""
    data = load_data(data_file)
    emit(_service(ctx, today).summary(OWNER, data).to_dict())


@click.command()
@DATA_FILE
@click.option(
    "--days",
    type=click.IntRange(min=0, max=MAX_WINDOW_DAYS),
    default=None,
    help="Window length (default engine.history_window_days).",
)
@click.option("--today", default=None, help="Treat this day (YYYY-MM-DD) as today.")
@click.pass_context
def history(ctx: click.Context, data_file: str, days: int | None, today: str | None) -> None:
    """Daily portfolio value over a window, ending on today's live value."""
    data = load_data(data_file)
    emit([p.to_dict() for p in _service(ctx, today).historical_series(OWNER, data, days)])
