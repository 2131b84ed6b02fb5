"""
Sparebook exception hierarchy.

All sparebook exceptions inherit from SparebookError, making it easy for callers
to catch library-level errors while still distinguishing specific failure modes.

Data-quality problems inside the engine (a corrupt amount, a missing price) are
logged and skipped, never raised. Only rejected calls surface as exceptions.
"""


class SparebookError(Exception):
    """Base exception class for all sparebook errors."""


class ConfigurationError(SparebookError):
    """Raised for configuration errors (missing keys, invalid values)."""


class ContractViolationError(SparebookError, ValueError):
    """Raised when an engine call breaks its contract (negative window, missing account id)."""


class InvalidRecordError(SparebookError):
    """Raised when a raw data-store row cannot be turned into a domain record."""

    def __init__(self, message: str, record_id: str | None = None):
        super().__init__(message)
        self.record_id = record_id


class CacheError(SparebookError):
    """Raised for caching errors."""
