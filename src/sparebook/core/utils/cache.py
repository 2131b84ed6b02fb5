"""
In-memory caching with TTL expiry.

Request-deduplication layer that sits *outside* the valuation engine: callers
choose explicit keys and TTLs, and the engine functions themselves stay pure.
Provides both a class-based API and a ``memoize`` wrapper.

Values are stored by reference. Callers must not mutate what they get back.
"""

import threading
from collections.abc import Callable
from time import monotonic
from typing import Any

from loguru import logger

from ..exceptions import CacheError

_MISSING = object()


class TTLCache:
    """Thread-safe key/value cache with per-entry TTL."""

    def __init__(self, default_ttl: float = 300, clock: Callable[[], float] = monotonic):
        """
        Args:
            default_ttl: Seconds an entry stays fresh when no TTL is given.
            clock: Monotonic time source (injectable for tests).
        """
        if default_ttl < 0:
            raise CacheError(f"TTL must be non-negative, got {default_ttl}")
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store a value under ``key`` for ``ttl`` seconds."""
        ttl = self.default_ttl if ttl is None else ttl
        if ttl < 0:
            raise CacheError(f"TTL must be non-negative, got {ttl}")
        with self._lock:
            self._entries[key] = (self._clock() + ttl, value)

    def get(self, key: str, default: Any = None) -> Any:
        """Retrieve a value if present and not expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            expires_at, value = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return default
            return value

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def delete_prefix(self, prefix: str) -> int:
        """Drop every key starting with ``prefix``. Returns the number removed."""
        with self._lock:
            doomed = [k for k in self._entries if k.startswith(prefix)]
            for k in doomed:
                del self._entries[k]
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def __len__(self) -> int:
        with self._lock:
            now = self._clock()
            return sum(1 for expires_at, _ in self._entries.values() if expires_at > now)

    def get_or_compute(self, key: str, compute: Callable[[], Any], ttl: float | None = None) -> Any:
        """Return the cached value for ``key``, computing and storing it on a miss.

        The computation runs outside the lock, so two concurrent misses may both
        compute; the last writer wins.
        """
        value = self.get(key, _MISSING)
        if value is not _MISSING:
            logger.debug(f"Cache hit: {key}")
            return value
        logger.debug(f"Cache miss: {key}")
        value = compute()
        self.set(key, value, ttl)
        return value


def memoize(
    cache: TTLCache,
    key_fn: Callable[..., str],
    ttl: float | None = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Wrap a pure function so its results are cached under ``key_fn(*args, **kwargs)``.

    Usage::

        cache = TTLCache(default_ttl=60)

        @memoize(cache, key_fn=lambda owner, *_: f"balances:{owner}")
        def balances_for(owner, accounts, transactions, as_of): ...
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            key = key_fn(*args, **kwargs)
            return cache.get_or_compute(key, lambda: func(*args, **kwargs), ttl)

        wrapper.__name__ = func.__name__
        wrapper.__doc__ = func.__doc__
        wrapper.__wrapped__ = func  # type: ignore[attr-defined]
        return wrapper

    return decorator
