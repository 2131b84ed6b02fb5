"""Sparebook: ledger balances and portfolio valuation for household finances."""

__version__ = "0.1.0"
