"""Shared type aliases used across sparebook."""

from decimal import Decimal
from typing import Any

# Identifiers
AccountId = str
SecurityId = str

# Amounts may arrive already parsed or as strings straight from the data store
RawAmount = Decimal | int | float | str | None

# Raw data-store row
Row = dict[str, Any]
