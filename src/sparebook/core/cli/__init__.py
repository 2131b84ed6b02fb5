"""Sparebook CLI: run the valuation engine over a data export."""

import click

from sparebook import __version__
from sparebook.core.config import Config
from sparebook.core.exceptions import ConfigurationError
from sparebook.core.utils.logging import setup_logging_from_config


@click.group()
@click.version_option(version=__version__, package_name="sparebook")
@click.option("--config", "config_file", type=click.Path(exists=True, dir_okay=False), help="YAML or JSON config file.")
@click.option("--log-level", default=None, help="Override logging.level (DEBUG, INFO, WARNING, ...).")
@click.pass_context
def main(ctx: click.Context, config_file: str | None, log_level: str | None) -> None:
    """Sparebook: ledger balances and portfolio valuation."""
    try:
        config = Config(config_file=config_file)
        if log_level:
            config.set("logging.level", log_level)
        config.validated()
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e
    setup_logging_from_config(config)
    ctx.obj = config


# Register subcommands
from .ledger_cmd import balances
from .portfolio_cmd import history, holdings, summary, valuation

main.add_command(balances)
main.add_command(holdings)
main.add_command(valuation)
main.add_command(summary)
main.add_command(history)
