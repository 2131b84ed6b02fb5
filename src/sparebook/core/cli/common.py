"""Shared helpers for CLI commands."""

from __future__ import annotations

import json
import os
from datetime import date
from decimal import Decimal
from typing import Any

import click
import yaml

from sparebook.core.exceptions import InvalidRecordError
from sparebook.financial.models import PortfolioData
from sparebook.financial.records import load_portfolio_data

DATA_FILE = click.argument("data_file", type=click.Path(exists=True, dir_okay=False))


def load_data(path: str) -> PortfolioData:
    """Read a YAML/JSON export of an owner's rows."""
    ext = os.path.splitext(path)[1].lower()
    with open(path) as f:
        payload = json.load(f) if ext == ".json" else yaml.safe_load(f)
    if not isinstance(payload, dict):
        raise click.ClickException(f"{path}: expected a mapping at the top level")
    try:
        return load_portfolio_data(payload)
    except InvalidRecordError as e:
        raise click.ClickException(f"{path}: {e}") from e


def _default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, date):
        return value.isoformat()
    raise TypeError(f"Cannot serialize {type(value).__name__}")


def emit(payload: Any) -> None:
    """Print a JSON document to stdout."""
    click.echo(json.dumps(payload, indent=2, default=_default))
